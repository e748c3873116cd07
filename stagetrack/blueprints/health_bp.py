"""
Health check blueprint.

    GET /api/v1/health  liveness plus a database round-trip
"""

import logging
import time

from flask import Blueprint, jsonify

from stagetrack.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("", methods=["GET"])
def health():
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        database = {"status": "ok", "latency_ms": round(db_ms, 1)}
        status, code = "ok", 200
    except Exception as exc:
        logger.error("Health check: database failed: %s", exc)
        database = {"status": "error", "detail": str(exc)}
        status, code = "degraded", 503

    return jsonify({"status": status, "app": "Stage Tracker", "database": database}), code
