# backend/bizops/routes/system.py
"""
System health endpoint.

Each check reports {"status": healthy|degraded|unhealthy, ...}. Any
unhealthy check makes the endpoint answer 503; degraded checks still
answer 200 since the API keeps serving requests.
"""

import time

from flask import Blueprint, current_app

from ..extensions import db, relay
from ..models import Product, SessionToken, User
from bizops.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def check_database() -> dict:
    """Round-trip a few counts against the database."""
    started = time.perf_counter()
    try:
        counts = {
            "users": db.session.query(User).count(),
            "products": db.session.query(Product).filter(Product.is_active.is_(True)).count(),
            "live_sessions": db.session.query(SessionToken).filter(
                SessionToken.is_revoked.is_(False),
                SessionToken.expires_at >= utcnow(),
            ).count(),
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {"status": "unhealthy", "latency_ms": _elapsed_ms(started), "error": "Database error"}

    return {"status": "healthy", "latency_ms": _elapsed_ms(started), "details": counts}


def check_event_relay() -> dict:
    return {
        "status": "healthy",
        "details": {"subscribers": relay.subscriber_count, "queue_size": relay.maxsize},
    }


def check_insight_generator() -> dict:
    # Insights are advisory; a missing key degrades, never fails, the service
    if not current_app.config.get("OPENAI_API_KEY"):
        return {
            "status": "degraded",
            "warning": "OPENAI_API_KEY not configured; insight generation returns no results",
        }
    return {"status": "healthy", "details": {"model": current_app.config.get("OPENAI_MODEL")}}


HEALTH_CHECKS = {
    "database": check_database,
    "event_relay": check_event_relay,
    "insight_generator": check_insight_generator,
}


def _rollup(checks: dict) -> tuple[str, int]:
    statuses = {check["status"] for check in checks.values()}
    if "unhealthy" in statuses:
        return "unhealthy", 503
    if "degraded" in statuses:
        return "degraded", 200
    return "healthy", 200


@system_bp.get("/health")
def health():
    """Unauthenticated liveness and dependency probe."""
    started = time.perf_counter()
    checks = {name: check() for name, check in HEALTH_CHECKS.items()}
    status, http_status = _rollup(checks)

    return {
        "status": status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": _elapsed_ms(started),
        "checks": checks,
    }, http_status
