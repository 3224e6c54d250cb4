"""
Health check blueprint.

Endpoints:
    GET /api/v1/health        store connectivity (200 healthy / 503 degraded)
    GET /api/v1/health/ready  simple 200 for load balancers
"""

import logging
import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from docmanager.core.exceptions import StoreTimeoutError
from docmanager.store import get_document_store

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("", methods=["GET"])
def health():
    """Run ``SELECT 1`` through the document store under its time budget."""
    store = get_document_store()
    checks = {}
    healthy = True

    try:
        t0 = time.perf_counter()
        store.run("health:ping", lambda session: session.execute(text("SELECT 1")).scalar())
        checks["store"] = {
            "status": "ok",
            "latency_ms": round((time.perf_counter() - t0) * 1000, 1),
            "budget_ms": store.max_time_ms,
        }
    except (SQLAlchemyError, StoreTimeoutError) as exc:
        healthy = False
        checks["store"] = {"status": "error", "detail": str(exc)}
        logger.error("Health check: store failed: %s", exc)

    checks["externalContent"] = {
        "enabled": bool(current_app.config.get("EXTERNAL_CONTENT_ENABLED")),
        "configured": current_app.extensions.get("signed_url_issuer") is not None,
    }

    return jsonify({
        "status": "healthy" if healthy else "degraded",
        "app": "Document Manager",
        "checks": checks,
    }), 200 if healthy else 503


@health_bp.route("/ready", methods=["GET"])
def ready():
    """Readiness probe: 200 whenever the app is up."""
    return jsonify({"status": "ok"}), 200
