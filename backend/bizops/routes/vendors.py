# Overview: Flask API routes for vendors operations; parses input and returns JSON responses.

# backend/bizops/routes/vendors.py
"""
Vendor management routes.

SECURITY: every route requires a premium subscription.
"""
from flask import Blueprint, current_app, jsonify, request

from ..models import Vendor
from ..services import vendor_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    NotFoundError,
    ConflictError,
)
from ..decorators import require_auth, require_subscription

VENDOR_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address", "performance_score"},
    required_on_create={"name"},
)

vendors_bp = Blueprint("vendors", __name__, url_prefix="/api/vendors")


@vendors_bp.get("")
@require_auth
@require_subscription("premium")
def list_vendors():
    return jsonify([v.to_dict() for v in vendor_service.list_vendors()]), 200


@vendors_bp.post("")
@require_auth
@require_subscription("premium")
def create_vendor_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Vendor, payload=payload, policy=VENDOR_POLICY, partial=False)
        vendor = vendor_service.create_vendor(patch=patch)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to create vendor")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(vendor.to_dict()), 201


@vendors_bp.get("/<int:vendor_id>")
@require_auth
@require_subscription("premium")
def get_vendor(vendor_id: int):
    try:
        vendor = vendor_service.get_vendor(vendor_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(vendor.to_dict()), 200


@vendors_bp.put("/<int:vendor_id>")
@require_auth
@require_subscription("premium")
def update_vendor_route(vendor_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Vendor, payload=payload, policy=VENDOR_POLICY, partial=True)
        vendor = vendor_service.update_vendor(vendor_id=vendor_id, patch=patch)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update vendor")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(vendor.to_dict()), 200


@vendors_bp.delete("/<int:vendor_id>")
@require_auth
@require_subscription("premium")
def delete_vendor_route(vendor_id: int):
    try:
        vendor_service.delete_vendor(vendor_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to delete vendor")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Vendor deleted"}), 200
