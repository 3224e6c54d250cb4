"""
Document Manager
Flask Application Factory.

Usage:
    from docmanager import create_app
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

from docmanager.config import basedir, config
from docmanager.integrations.signed_url import build_signed_url_issuer
from docmanager.middleware.logging_config import configure_logging
from docmanager.middleware.rate_limiter import init_rate_limits
from docmanager.middleware.security_headers import init_security_headers
from docmanager.middleware.timing import init_request_timing
from docmanager.models import db
from docmanager.store import init_document_store

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # per-blueprint only
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: "development", "testing" or "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name])

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    if str(app.config.get("SQLALCHEMY_DATABASE_URI", "")).startswith("sqlite:///"):
        os.makedirs(os.path.join(basedir, "instance"), exist_ok=True)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    init_security_headers(app)
    init_request_timing(app)

    # ── Import all models so Alembic / create_all see them ───────────────
    from docmanager.models import auth as _auth_models            # noqa: F401
    from docmanager.models import checklist as _checklist_models  # noqa: F401
    from docmanager.models import content as _content_models      # noqa: F401
    from docmanager.models import project as _project_models      # noqa: F401
    from docmanager.models import raci as _raci_models            # noqa: F401

    with app.app_context():
        db.create_all()
        app.logger.info("db.create_all() completed")

    # ── Document store handle & external content ─────────────────────────
    init_document_store(app, db)
    app.extensions["signed_url_issuer"] = build_signed_url_issuer(app)

    # ── Blueprints ───────────────────────────────────────────────────────
    from docmanager.blueprints import ALL_BLUEPRINTS

    for bp in ALL_BLUEPRINTS:
        app.register_blueprint(bp)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error", "detail": str(e)}, 500

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
