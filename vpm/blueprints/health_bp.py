"""
Health check blueprint.

Endpoints:
    GET /api/v1/health/ready  — simple 200 for load balancers
    GET /api/v1/health/live   — dependency status (DB, schema version)
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from vpm.models import db
from vpm.models.schema import SCHEMA_VERSION, current_schema_version

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("/ready", methods=["GET"])
def ready():
    """Simple readiness probe — always 200 if app is running."""
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Detailed liveness check with dependency status."""
    checks = {}
    overall = True

    # ── Database ─────────────────────────────────────────────────────
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        checks["database"] = {"status": "ok", "latency_ms": round(db_ms, 1)}
    except Exception as exc:
        db.session.rollback()
        checks["database"] = {"status": "error", "detail": str(exc)}
        overall = False
        logger.error("Health check — database failed: %s", exc)

    # ── Schema version ───────────────────────────────────────────────
    if overall:
        try:
            found = current_schema_version()
            checks["schema"] = {
                "status": "ok" if found == SCHEMA_VERSION else "mismatch",
                "version": found,
                "expected": SCHEMA_VERSION,
            }
            if found != SCHEMA_VERSION:
                overall = False
        except Exception as exc:
            db.session.rollback()
            checks["schema"] = {"status": "error", "detail": str(exc)}
            overall = False

    checks["app"] = {
        "name": "Video Production Tracker",
        "debug": current_app.debug,
        "testing": current_app.testing,
        "demo_mode": bool(current_app.config.get("DEMO_MODE")),
        "read_state_backend": current_app.config.get("READ_STATE_BACKEND", "client"),
    }

    status_code = 200 if overall else 503
    return jsonify({
        "status": "healthy" if overall else "degraded",
        "checks": checks,
    }), status_code
