# Overview: Flask API routes for purchase order operations; parses input and returns JSON responses.

# backend/bizops/routes/purchase_orders.py
"""
Purchase order API routes.

SECURITY: every route requires a premium subscription.
"""

from flask import Blueprint, request, jsonify, g
from flask import current_app

from ..services import order_service
from ..validation import ValidationError, NotFoundError, ConflictError
from ..decorators import require_auth, require_subscription


purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


@purchase_orders_bp.get("")
@require_auth
@require_subscription("premium")
def list_purchase_orders_route():
    orders = order_service.list_purchase_orders()
    return jsonify([o.to_dict() for o in orders]), 200


@purchase_orders_bp.post("")
@require_auth
@require_subscription("premium")
def create_purchase_order_route():
    """
    Create a purchase order with its items.

    Body: {"order": {vendor_id, expected_date?, tax_cents?}, "items": [...]}
    Stock is not changed.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        detail = order_service.create_purchase_order(g.principal, data.get("order"), data.get("items"))
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create purchase order")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(detail), 201


@purchase_orders_bp.get("/<int:order_id>")
@require_auth
@require_subscription("premium")
def get_purchase_order_route(order_id: int):
    try:
        detail = order_service.get_purchase_order(order_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(detail), 200


@purchase_orders_bp.put("/<int:order_id>")
@require_auth
@require_subscription("premium")
def update_purchase_order_route(order_id: int):
    """Body: {"status": "confirmed" | "received" | "cancelled"}"""
    data = request.get_json(silent=True) or {}

    try:
        detail = order_service.update_purchase_order_status(order_id, data.get("status"))
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update purchase order")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(detail), 200
