# backend/bizops/services/catalog_service.py
"""
Catalog Store

Product reads and writes. Deactivation is a flag flip, never a hard
delete, so historical order items keep their product reference.

`quantity` is only written here by a manual adjustment; order
processing decrements it in its own unit of work (order_service).
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product
from ..validation import MAX_QUANTITY, ConflictError, NotFoundError, ValidationError, coerce_int

PRODUCT_MUTABLE_FIELDS = {
    "name", "sku", "barcode", "price_cents", "cost_cents", "quantity",
    "low_stock_threshold", "category", "description", "is_active",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_unique_identifiers(patch: dict, exclude_id: int | None = None) -> None:
    for field in ("sku", "barcode"):
        value = patch.get(field)
        if value is None:
            continue
        query = db.session.query(Product).filter(getattr(Product, field) == value)
        if exclude_id is not None:
            query = query.filter(Product.id != exclude_id)
        if query.first():
            raise ConflictError(f"{field.upper()} already exists: {value}")


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found", entity="product", entity_id=product_id)
    return product


def get_product_by_barcode(barcode: str) -> Product:
    """Exact barcode match."""
    product = db.session.query(Product).filter(Product.barcode == barcode).first()
    if not product:
        raise NotFoundError("Product not found", entity="product", entity_id=barcode)
    return product


def list_active_products() -> list[Product]:
    return (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )


def list_low_stock_products() -> list[Product]:
    """Active products at or below their reorder threshold (inclusive)."""
    return (
        db.session.query(Product)
        .filter(
            Product.is_active.is_(True),
            Product.quantity <= Product.low_stock_threshold,
        )
        .order_by(Product.quantity.asc(), Product.name.asc())
        .all()
    )


def create_product(*, patch: dict) -> Product:
    """
    Create a product from a validated patch dict.

    Raises ConflictError if the SKU or barcode is already in use.
    """
    _ensure_unique_identifiers(patch)

    p = Product()
    apply_product_patch(p, patch)
    if p.quantity is None:
        p.quantity = 0
    if p.low_stock_threshold is None:
        p.low_stock_threshold = 10

    db.session.add(p)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Product violates a uniqueness constraint")
    return p


def update_product(*, product_id: int, patch: dict) -> Product:
    """Field-level update. Only keys present in the patch change."""
    p = get_product(product_id)
    _ensure_unique_identifiers(patch, exclude_id=p.id)

    apply_product_patch(p, patch)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Product violates a uniqueness constraint")
    return p


def update_product_quantity(*, product_id: int, quantity) -> Product:
    """Manual stock adjustment to an absolute on-hand value."""
    quantity = coerce_int(quantity, "quantity")
    if quantity < 0:
        raise ValidationError("quantity must be >= 0", field="quantity")
    if quantity > MAX_QUANTITY:
        raise ValidationError(f"quantity cannot exceed {MAX_QUANTITY}", field="quantity")

    p = get_product(product_id)
    p.quantity = quantity
    db.session.commit()
    return p


def deactivate_product(*, product_id: int) -> Product:
    p = get_product(product_id)
    p.is_active = False
    db.session.commit()
    return p
