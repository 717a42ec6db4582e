"""
Startup diagnostics — runs once when the Flask app starts.

Checks the database, schema version and runtime switches and logs a
summary banner.
"""

import logging
import sys

from flask import Flask

from vpm.models import db

logger = logging.getLogger(__name__)


def run_startup_diagnostics(app: Flask):
    """Run diagnostic checks during app startup (inside app context)."""
    if app.config.get("TESTING"):
        return  # skip during tests for speed

    issues: list[str] = []

    with app.app_context():
        py = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"

        # ── Database connectivity ────────────────────────────────────
        db_status = "ok"
        db_uri = str(app.config.get("SQLALCHEMY_DATABASE_URI", ""))
        db_type = "PostgreSQL" if "postgresql" in db_uri else "SQLite" if "sqlite" in db_uri else "unknown"
        try:
            db.session.execute(db.text("SELECT 1"))
        except Exception as exc:
            db_status = "FAILED"
            issues.append(f"Database unreachable: {exc}")
            db.session.rollback()

        # ── Schema version ───────────────────────────────────────────
        schema_status = "unknown"
        if db_status == "ok":
            from vpm.models.schema import SCHEMA_VERSION, current_schema_version
            try:
                found = current_schema_version()
                schema_status = f"v{found} (expected v{SCHEMA_VERSION})"
                if found != SCHEMA_VERSION:
                    issues.append("Schema version mismatch — run 'flask db upgrade'")
            except Exception:
                schema_status = "not stamped"
                db.session.rollback()

        # ── Rate limiter storage ─────────────────────────────────────
        redis_url = app.config.get("REDIS_URL", "")
        limiter_store = "redis" if redis_url.startswith("redis") else "memory"

        read_state = app.config.get("READ_STATE_BACKEND", "client")
        demo = "ON" if app.config.get("DEMO_MODE") else "off"

        banner = f"""
╔══════════════════════════════════════════════════════════════╗
║  Video Production Tracker — Startup Diagnostics             ║
╠══════════════════════════════════════════════════════════════╣
║  Python      : {py:<46s}║
║  Debug       : {str(app.debug):<46s}║
║  Database    : {f'{db_type} ({db_status})':<46s}║
║  Schema      : {schema_status:<46s}║
║  Limiter     : {limiter_store:<46s}║
║  Read state  : {read_state:<46s}║
║  Demo mode   : {demo:<46s}║
╚══════════════════════════════════════════════════════════════╝"""
        logger.info(banner)

        if issues:
            logger.warning("Startup issues detected:")
            for issue in issues:
                logger.warning("  ⚠ %s", issue)
        else:
            logger.info("All startup checks passed")
