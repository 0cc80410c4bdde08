# Overview: Flask API routes for dashboard reporting; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..services import reporting_service
from ..decorators import require_auth

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


def _positive_int_arg(name: str, default: int, maximum: int) -> int:
    value = request.args.get(name, type=int)
    if not value or value < 1:
        return default
    return min(value, maximum)


@dashboard_bp.get("/metrics")
@require_auth
def metrics():
    return jsonify(reporting_service.dashboard_metrics()), 200


@dashboard_bp.get("/sales-analytics")
@require_auth
def sales_analytics():
    """Query params: days (default 7, max 365)."""
    days = _positive_int_arg("days", 7, 365)
    return jsonify(reporting_service.sales_analytics(days)), 200


@dashboard_bp.get("/top-products")
@require_auth
def top_products():
    """Query params: limit (default 5, max 100)."""
    limit = _positive_int_arg("limit", 5, 100)
    return jsonify(reporting_service.top_products(limit)), 200
