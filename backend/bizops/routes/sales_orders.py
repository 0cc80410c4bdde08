# Overview: Flask API routes for sales order operations; parses input and returns JSON responses.

# backend/bizops/routes/sales_orders.py
"""Sales order API routes. Creation is a single atomic call."""

from flask import Blueprint, request, jsonify, g
from flask import current_app

from ..services import order_service
from ..services.order_service import InsufficientStockError
from ..validation import ValidationError, NotFoundError, ConflictError
from ..decorators import require_auth


sales_orders_bp = Blueprint("sales_orders", __name__, url_prefix="/api/sales-orders")


@sales_orders_bp.get("")
@require_auth
def list_sales_orders_route():
    orders = order_service.list_sales_orders()
    return jsonify([o.to_dict() for o in orders]), 200


@sales_orders_bp.post("")
@require_auth
def create_sales_order_route():
    """
    Create a sales order with its items.

    Body: {"order": {...header...}, "items": [{product_id, quantity, ...}]}

    The order, its items and the stock decrements commit together or not
    at all.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        detail = order_service.create_sales_order(g.principal, data.get("order"), data.get("items"))
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except InsufficientStockError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to create sales order")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(detail), 201


@sales_orders_bp.get("/<int:order_id>")
@require_auth
def get_sales_order_route(order_id: int):
    try:
        detail = order_service.get_sales_order(order_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(detail), 200


@sales_orders_bp.put("/<int:order_id>")
@require_auth
def update_sales_order_route(order_id: int):
    """Update status and/or payment_status."""
    data = request.get_json(silent=True) or {}

    try:
        detail = order_service.update_sales_order(order_id, data)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update sales order")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(detail), 200
