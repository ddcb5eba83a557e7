# backend/solnet/routes/system.py
"""
System health endpoint.

Checks the database, the session table and the SMS gateway configuration.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Location, SessionToken, User
from ..services import sms_gateway
from solnet.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def _timed(check) -> dict:
    start_time = time.time()
    result = check()
    result["latency_ms"] = round((time.time() - start_time) * 1000, 2)
    return result


def check_database_health() -> dict:
    try:
        return {
            "status": "healthy",
            "details": {
                "locations": db.session.query(Location).count(),
                "users": db.session.query(User).count(),
            },
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "error": "Database error"}


def check_session_service_health() -> dict:
    try:
        now = utcnow()
        active_sessions = db.session.query(SessionToken).filter(
            SessionToken.is_revoked.is_(False),
            SessionToken.expires_at >= now,
        ).count()
        return {"status": "healthy", "details": {"active_sessions": active_sessions}}
    except Exception:
        current_app.logger.exception("Session service health check failed")
        return {"status": "unhealthy", "error": "Session service error"}


def check_sms_gateway_health() -> dict:
    """An unconfigured gateway is degraded: messages are accepted but not delivered."""
    try:
        config = sms_gateway.load_config()
    except Exception:
        current_app.logger.exception("SMS gateway health check failed")
        return {"status": "unhealthy", "error": "SMS configuration error"}

    if not config.is_active:
        return {"status": "degraded", "warning": "SMS gateway not configured or disabled"}
    return {"status": "healthy"}


@system_bp.get("/health")
@system_bp.get("/api/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: a dependency is unhealthy
    """
    start_time = time.time()

    checks = {
        "database": _timed(check_database_health),
        "session_service": _timed(check_session_service_health),
        "sms_gateway": _timed(check_sms_gateway_health),
    }

    statuses = [c["status"] for c in checks.values()]
    if "unhealthy" in statuses:
        overall_status, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }, http_status
