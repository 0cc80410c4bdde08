# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/bizops/routes/products.py
"""
Product catalog routes.

SECURITY:
- Read operations require authentication
- Write operations require the admin or manager role
"""
from flask import Blueprint, current_app, jsonify, request

from ..models import Product
from ..services import catalog_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    NotFoundError,
    ConflictError,
)
from ..decorators import require_auth, require_role

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "sku", "barcode", "price_cents", "cost_cents", "quantity",
        "low_stock_threshold", "category", "description", "is_active",
    },
    required_on_create={"name", "price_cents"},
    money_fields={"price_cents", "cost_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """List active products ordered by name."""
    products = catalog_service.list_active_products()
    return jsonify([p.to_dict() for p in products]), 200


@products_bp.get("/low-stock")
@require_auth
def list_low_stock():
    """Active products at or below their reorder threshold."""
    products = catalog_service.list_low_stock_products()
    return jsonify([p.to_dict() for p in products]), 200


@products_bp.get("/barcode/<string:barcode>")
@require_auth
def get_by_barcode(barcode: str):
    try:
        product = catalog_service.get_product_by_barcode(barcode)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(product.to_dict()), 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product(product_id: int):
    try:
        product = catalog_service.get_product(product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(product.to_dict()), 200


@products_bp.post("")
@require_auth
@require_role("admin", "manager")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        created = catalog_service.create_product(patch=patch)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(created.to_dict()), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_role("admin", "manager")
def update_product_route(product_id: int):
    """Field-level update; only keys present in the body change."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = catalog_service.update_product(product_id=product_id, patch=patch)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(updated.to_dict()), 200


@products_bp.patch("/<int:product_id>/quantity")
@require_auth
@require_role("admin", "manager")
def update_quantity_route(product_id: int):
    """Manual stock adjustment: body {"quantity": <absolute on-hand value>}."""
    payload = request.get_json(silent=True) or {}
    if payload.get("quantity") is None:
        return jsonify({"error": "quantity is required", "field": "quantity"}), 400

    try:
        product = catalog_service.update_product_quantity(product_id=product_id, quantity=payload["quantity"])
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to adjust product quantity")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("Product %s quantity set to %s", product.id, product.quantity)
    return jsonify(product.to_dict()), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role("admin", "manager")
def delete_product_route(product_id: int):
    """Soft delete: the product is deactivated, never removed."""
    try:
        product = catalog_service.deactivate_product(product_id=product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to deactivate product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(product.to_dict()), 200
