"""
ConstructX
Flask Application Factory.

Usage:
    from constructx import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, abort, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import event as _sa_event, engine as _sa_engine

from constructx.auth import init_auth
from constructx.config import config
from constructx.middleware.logging_config import configure_logging
from constructx.middleware.rate_limiter import init_rate_limits
from constructx.middleware.security_headers import init_security_headers
from constructx.middleware.timing import init_request_timing
from constructx.models import db

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
    default_limits=[],                     # per-blueprint limits only
    storage_uri=os.getenv("REDIS_URL") or "memory://",
)

# Mutating endpoints that take multipart/form-data instead of JSON
_UPLOAD_SUFFIXES = ("/receipt",)


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
    cfg = config[config_name]
    # ProductionConfig validates required env vars on instantiation
    app.config.from_object(cfg() if config_name == "production" else cfg)

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

    # ── Authentication, security headers, timing ─────────────────────────
    init_auth(app)
    init_security_headers(app)
    init_request_timing(app)

    # ── Request guards (body size + Content-Type) ────────────────────────
    @app.before_request
    def _guard_request():
        if not request.path.startswith("/api/"):
            return None
        is_upload = request.path.endswith(_UPLOAD_SUFFIXES)
        max_json = app.config.get("MAX_JSON_LENGTH")
        if not is_upload and max_json and request.content_length and request.content_length > max_json:
            abort(413, description="Request body too large")
        if request.method in ("POST", "PUT", "PATCH"):
            ct = request.content_type or ""
            if is_upload and "multipart/form-data" in ct:
                return None
            if request.content_length and "json" not in ct:
                abort(415, description="Content-Type must be application/json")
        return None

    # ── Import all models so create_all / Alembic see them ───────────────
    from constructx.models import audit as _audit_models                 # noqa: F401
    from constructx.models import budget as _budget_models               # noqa: F401
    from constructx.models import communication as _communication_models  # noqa: F401
    from constructx.models import document as _document_models           # noqa: F401
    from constructx.models import expense as _expense_models             # noqa: F401
    from constructx.models import financial as _financial_models         # noqa: F401
    from constructx.models import lead as _lead_models                   # noqa: F401
    from constructx.models import notification as _notification_models   # noqa: F401
    from constructx.models import project as _project_models             # noqa: F401
    from constructx.models import quality as _quality_models             # noqa: F401
    from constructx.models import resource as _resource_models           # noqa: F401
    from constructx.models import safety as _safety_models               # noqa: F401
    from constructx.models import team as _team_models                   # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if not app.testing:
        with app.app_context():
            try:
                db.create_all()
                app.logger.info("db.create_all() completed successfully")
            except Exception as e:
                app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from constructx.blueprints.audit_bp import audit_bp
    from constructx.blueprints.budget_bp import budget_bp
    from constructx.blueprints.communication_bp import communication_bp
    from constructx.blueprints.document_bp import document_bp
    from constructx.blueprints.expense_bp import expense_bp
    from constructx.blueprints.financial_bp import financial_bp
    from constructx.blueprints.financial_item_bp import financial_item_bp
    from constructx.blueprints.health_bp import health_bp
    from constructx.blueprints.lead_bp import lead_bp
    from constructx.blueprints.notification_bp import notification_bp
    from constructx.blueprints.project_bp import project_bp
    from constructx.blueprints.quality_bp import quality_bp
    from constructx.blueprints.resource_bp import resource_bp
    from constructx.blueprints.safety_bp import safety_bp
    from constructx.blueprints.team_bp import team_bp

    app.register_blueprint(project_bp)
    app.register_blueprint(budget_bp)
    app.register_blueprint(expense_bp)
    app.register_blueprint(financial_bp)
    app.register_blueprint(financial_item_bp)
    app.register_blueprint(quality_bp)
    app.register_blueprint(safety_bp)
    app.register_blueprint(communication_bp)
    app.register_blueprint(document_bp)
    app.register_blueprint(lead_bp)
    app.register_blueprint(resource_bp)
    app.register_blueprint(team_bp)
    app.register_blueprint(notification_bp)
    app.register_blueprint(audit_bp)
    app.register_blueprint(health_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-demo")
    def seed_demo_cmd():
        """Seed a demo project with budget, expenses, a QC and a safety item."""
        from constructx.services.seed_service import seed_demo
        project = seed_demo()
        db.session.commit()
        if project:
            logger.info("Seeded demo project %s.", project.code)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        if request.path.startswith("/api/"):
            return {"error": "Not found", "path": request.path}, 404
        return e

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def too_large(e):
        return {"error": e.description or "Request body too large"}, 413

    @app.errorhandler(415)
    def unsupported_media(e):
        return {"error": e.description or "Unsupported media type"}, 415

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        if request.path.startswith("/api/"):
            return {"error": "Internal server error"}, 500
        return "<h1>500 — Internal Server Error</h1>", 500

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
