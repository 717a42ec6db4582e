"""
Video Production Tracker
Flask Application Factory.

Usage:
    from vpm import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from vpm.config import config
from vpm.core.exceptions import StoreUnavailableError, ValidationError
from vpm.middleware.diagnostics import run_startup_diagnostics
from vpm.middleware.jwt_auth import init_jwt_middleware
from vpm.middleware.logging_config import configure_logging
from vpm.middleware.rate_limiter import init_rate_limits
from vpm.middleware.timing import init_request_timing
from vpm.models import db
from vpm.utils.errors import E, api_error

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit; applied per blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def _prepare_schema(app):
    """Create (dev/test) and verify the schema inside an app context.

    Raises:
        SchemaMismatchError: live schema or version differs from the models.
        StoreUnavailableError: database unreachable and DEMO_MODE is off.
    """
    from vpm.models.schema import stamp_schema_version, verify_schema

    try:
        if app.config.get("AUTO_CREATE_SCHEMA"):
            db.create_all()
            stamp_schema_version()
        if app.config.get("SCHEMA_CHECK_ENABLED", True):
            verify_schema()
    except OperationalError as exc:
        db.session.rollback()
        if app.config.get("DEMO_MODE"):
            app.logger.warning("Database unreachable at startup, running in demo mode: %s", exc)
            return
        raise StoreUnavailableError(f"Database unreachable at startup: {exc}") from exc


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing + JWT identity ────────────────────────────────────
    init_request_timing(app)
    init_jwt_middleware(app)

    # ── Request guards (input length + Content-Type) ─────────────────────
    app.config.setdefault("MAX_CONTENT_LENGTH", 1 * 1024 * 1024)  # 1 MB

    @app.before_request
    def _guard_request():
        from flask import abort
        max_len = app.config.get("MAX_CONTENT_LENGTH")
        if max_len and request.content_length and request.content_length > max_len:
            abort(413, description="Request body too large")
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.data and "json" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Models (registered on db.metadata before create_all) ─────────────
    from vpm.models import activity as _activity_models    # noqa: F401
    from vpm.models import auth as _auth_models            # noqa: F401
    from vpm.models import message as _message_models      # noqa: F401
    from vpm.models import project as _project_models      # noqa: F401
    from vpm.models import schema as _schema_models        # noqa: F401

    if "sqlite" in str(app.config.get("SQLALCHEMY_DATABASE_URI", "")):
        os.makedirs(app.instance_path, exist_ok=True)

    with app.app_context():
        _prepare_schema(app)

    # ── Blueprints ───────────────────────────────────────────────────────
    from vpm.blueprints import all_blueprints

    for bp in all_blueprints():
        app.register_blueprint(bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-demo")
    def seed_demo_cmd():
        """Seed demo users (admin, qc, two editors) and sample projects."""
        from vpm.services.seed import DEMO_PASSWORD, seed_demo
        counts = seed_demo(os.getenv("DEMO_SEED_PASSWORD", DEMO_PASSWORD))
        logger.info("Seeded %s users and %s projects.", counts["users"], counts["projects"])

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(StoreUnavailableError)
    def store_unavailable(e):
        return api_error(E.STORE_UNAVAILABLE, str(e))

    @app.errorhandler(SQLAlchemyError)
    def store_error(e):
        db.session.rollback()
        logger.exception("Unhandled store error on %s %s", request.method, request.path)
        return api_error(E.STORE_UNAVAILABLE, "Data store unavailable")

    @app.errorhandler(ValidationError)
    def validation_error(e):
        return api_error(E.VALIDATION_INVALID, str(e), details=e.details)

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "code": E.NOT_FOUND, "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def too_large(e):
        return {"error": "Request body too large"}, 413

    @app.errorhandler(415)
    def unsupported_media(e):
        return {"error": "Content-Type must be application/json"}, 415

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error", "code": E.INTERNAL}, 500

    # ── Startup diagnostics ──────────────────────────────────────────────
    run_startup_diagnostics(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
