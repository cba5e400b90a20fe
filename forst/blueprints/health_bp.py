"""
Health probes.

    GET /api/v1/health/ready   process is up (no I/O)
    GET /api/v1/health/live    database round-trip plus FORST row counts; 503 on failure
"""

import logging
import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from forst.models import db
from forst.services.forst_queries import count_rows

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("/ready", methods=["GET"])
def ready():
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Database probe; table counts show whether the report data is loaded."""
    started = time.perf_counter()
    try:
        db.session.execute(db.text("SELECT 1"))
        counts = count_rows()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Liveness probe failed: %s", exc)
        database = {"status": "error", "detail": str(exc)}
        healthy = False
    else:
        database = {
            "status": "ok",
            "latency_ms": round((time.perf_counter() - started) * 1000, 1),
        }
        healthy = True

    checks = {
        "database": database,
        "app": {
            "name": "FORST Reporting Service",
            "debug": current_app.debug,
            "testing": current_app.testing,
        },
    }
    if healthy:
        checks["tables"] = {"status": "ok", "counts": counts}

    body = {"status": "healthy" if healthy else "degraded", "checks": checks}
    return jsonify(body), 200 if healthy else 503
