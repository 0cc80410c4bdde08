# Overview: Flask API routes for payments operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..services import payment_service
from ..validation import ValidationError, NotFoundError
from ..decorators import require_auth

payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.get("")
@require_auth
def list_payments():
    return jsonify([p.to_dict() for p in payment_service.list_payments()]), 200


@payments_bp.post("")
@require_auth
def create_payment_route():
    """
    Record a payment.

    Body: {amount_cents, method, customer_id?, sales_order_id?, reference?}
    """
    payload = request.get_json(silent=True) or {}

    try:
        payment = payment_service.create_payment(payload)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(payment.to_dict()), 201


@payments_bp.get("/<int:payment_id>")
@require_auth
def get_payment(payment_id: int):
    try:
        payment = payment_service.get_payment(payment_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(payment.to_dict()), 200
