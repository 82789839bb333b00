# backend/finmark/routes/system.py
"""
System health endpoint.

Not under /api, so it is never rate limited.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)

_STARTED_AT = time.monotonic()


def check_database_health() -> dict:
    """
    Check database connectivity with a trivial query.

    Returns dict with status and latency.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database check failed
    """
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"

    response = {
        "success": healthy,
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "uptime_seconds": round(time.monotonic() - _STARTED_AT, 1),
        "checks": {"database": database_health},
    }
    return response, 200 if healthy else 503
