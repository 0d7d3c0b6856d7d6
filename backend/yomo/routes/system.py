# backend/yomo/routes/system.py
"""
System health and version endpoints.

Health checks cover the database, the session table and the access-code
gate; version reports non-sensitive deployment details.
"""

import sys
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import AccessCode, Invoice, SessionToken, StockItem
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__)

API_VERSION = "1.0.0"


def _elapsed_ms(start_time: float) -> float:
    return round((time.time() - start_time) * 1000, 2)


def check_database_health() -> dict:
    """Check database connectivity with a count over the main tables."""
    start_time = time.time()
    try:
        item_count = db.session.query(StockItem).count()
        invoice_count = db.session.query(Invoice).count()

        return {
            "status": "healthy",
            "latency_ms": _elapsed_ms(start_time),
            "details": {
                "stock_items": item_count,
                "invoices": invoice_count,
            }
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": _elapsed_ms(start_time),
            "error": "Database error"
        }


def check_session_service_health() -> dict:
    start_time = time.time()
    try:
        active_sessions = db.session.query(SessionToken).filter_by(
            is_revoked=False
        ).count()

        # Expired but never revoked (could be cleaned up)
        expired_sessions = db.session.query(SessionToken).filter(
            SessionToken.expires_at < utcnow(),
            SessionToken.is_revoked == False  # noqa: E712
        ).count()

        return {
            "status": "healthy",
            "latency_ms": _elapsed_ms(start_time),
            "details": {
                "active_sessions": active_sessions,
                "expired_pending_cleanup": expired_sessions,
            }
        }
    except Exception:
        current_app.logger.exception("Session service health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": _elapsed_ms(start_time),
            "error": "Session service error"
        }


def check_access_gate_health() -> dict:
    """Degraded when no active access code exists: nobody can log in."""
    start_time = time.time()
    try:
        active_codes = db.session.query(AccessCode).filter_by(is_active=True).count()

        if not active_codes:
            return {
                "status": "degraded",
                "latency_ms": _elapsed_ms(start_time),
                "warning": "No active access codes; add one with `flask codes add`",
                "details": {"active_codes": 0},
            }

        return {
            "status": "healthy",
            "latency_ms": _elapsed_ms(start_time),
            "details": {"active_codes": active_codes},
        }
    except Exception:
        current_app.logger.exception("Access gate health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": _elapsed_ms(start_time),
            "error": "Access gate error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    checks = {
        "database": check_database_health(),
        "session_service": check_session_service_health(),
        "access_gate": check_access_gate_health(),
    }

    statuses = [check["status"] for check in checks.values()]
    if "unhealthy" in statuses:
        overall_status = "unhealthy"
        http_status = 503
    elif "degraded" in statuses:
        overall_status = "degraded"
        http_status = 200
    else:
        overall_status = "healthy"
        http_status = 200

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": _elapsed_ms(start_time),
        "checks": checks,
    }, http_status


@system_bp.get("/version")
def version():
    """
    Version endpoint for deployment debugging.

    Does NOT expose secret keys, database credentials or internal paths.
    """
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": API_VERSION,
        "environment": env,
        "python_version": sys.version.split()[0],
        "store": current_app.config.get("STORE_NAME"),
        "server_time": utcnow().isoformat() + "Z",
    }
