# Overview: Flask API routes for AI insights; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify

from ..services import insight_service
from ..validation import NotFoundError
from ..decorators import require_auth, require_subscription

insights_bp = Blueprint("insights", __name__, url_prefix="/api/ai")


@insights_bp.get("/insights")
@require_auth
@require_subscription("premium")
def list_insights():
    return jsonify([i.to_dict() for i in insight_service.list_insights()]), 200


@insights_bp.post("/generate-insights")
@require_auth
@require_subscription("premium")
def generate_insights():
    """
    Generate and store insights from recent sales and low stock.

    An unavailable generator yields an empty list with 200.
    """
    try:
        created = insight_service.generate_insights()
    except Exception:
        current_app.logger.exception("Failed to generate insights")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify([i.to_dict() for i in created]), 200


@insights_bp.post("/insights/<int:insight_id>/read")
@require_auth
@require_subscription("premium")
def mark_read(insight_id: int):
    try:
        insight = insight_service.mark_insight_read(insight_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(insight.to_dict()), 200
