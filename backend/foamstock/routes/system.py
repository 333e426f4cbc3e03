# Overview: Flask API route for service health; unauthenticated, polled by the deploy health check.

"""
GET /api/health

Each check runs one cheap query and reports healthy/unhealthy with its
latency. Any unhealthy check turns the response into a 503.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, SessionToken
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def _timed(name: str, check) -> dict:
    started = time.perf_counter()
    try:
        details = check()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Health check %s failed", name)
        result = {"status": "unhealthy", "error": f"{name} check failed"}
    else:
        result = {"status": "healthy"}
        if details:
            result["details"] = details
    result["latency_ms"] = round((time.perf_counter() - started) * 1000, 2)
    return result


def _check_database():
    db.session.execute(text("SELECT 1"))


def _check_sessions() -> dict:
    now = utcnow()
    live = db.session.query(SessionToken).filter(
        SessionToken.is_revoked.is_(False), SessionToken.expires_at >= now
    ).count()
    stale = db.session.query(SessionToken).filter(
        SessionToken.is_revoked.is_(False), SessionToken.expires_at < now
    ).count()
    return {"active_sessions": live, "expired_pending_cleanup": stale}


def _check_stock() -> dict:
    active = db.session.query(Product).filter(Product.is_active.is_(True))
    return {
        "active_products": active.count(),
        "out_of_stock": active.filter(Product.current_stock <= 0).count(),
    }


@system_bp.get("/health")
def health():
    started = time.perf_counter()
    checks = {
        "database": _timed("database", _check_database),
        "sessions": _timed("sessions", _check_sessions),
        "stock_ledger": _timed("stock_ledger", _check_stock),
    }
    unhealthy = any(c["status"] == "unhealthy" for c in checks.values())
    body = {
        "status": "unhealthy" if unhealthy else "healthy",
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.perf_counter() - started) * 1000, 2),
        "checks": checks,
    }
    return body, 503 if unhealthy else 200
