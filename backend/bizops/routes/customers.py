# Overview: Flask API routes for customers operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..models import Customer
from ..services import customer_service, payment_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    NotFoundError,
    ConflictError,
)
from ..decorators import require_auth, require_role

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address"},
    required_on_create={"name"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers():
    return jsonify([c.to_dict() for c in customer_service.list_customers()]), 200


@customers_bp.post("")
@require_auth
def create_customer_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        customer = customer_service.create_customer(patch=patch)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(customer.to_dict()), 201


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer(customer_id: int):
    try:
        customer = customer_service.get_customer(customer_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(customer.to_dict()), 200


@customers_bp.put("/<int:customer_id>")
@require_auth
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        customer = customer_service.update_customer(customer_id=customer_id, patch=patch)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(customer.to_dict()), 200


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_role("admin", "manager")
def delete_customer_route(customer_id: int):
    try:
        customer_service.delete_customer(customer_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to delete customer")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Customer deleted"}), 200


@customers_bp.get("/<int:customer_id>/payments")
@require_auth
def list_customer_payments(customer_id: int):
    try:
        payments = payment_service.list_customer_payments(customer_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify([p.to_dict() for p in payments]), 200
