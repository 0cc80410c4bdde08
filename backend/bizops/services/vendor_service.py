# Overview: Service-layer operations for vendors; encapsulates business logic and database work.

"""
Vendor Service

Vendors are the counterparty of every purchase order. A vendor that is
referenced by a purchase order cannot be deleted.
"""

from __future__ import annotations

from ..extensions import db
from ..models import PurchaseOrder, Vendor
from ..validation import ConflictError, NotFoundError, ValidationError

VENDOR_MUTABLE_FIELDS = {"name", "email", "phone", "address", "performance_score"}


def _check_score(patch: dict) -> None:
    score = patch.get("performance_score")
    if score is not None and not 0 <= score <= 100:
        raise ValidationError("performance_score must be between 0 and 100", field="performance_score")


def list_vendors() -> list[Vendor]:
    return db.session.query(Vendor).order_by(Vendor.name.asc(), Vendor.id.asc()).all()


def get_vendor(vendor_id: int) -> Vendor:
    vendor = db.session.get(Vendor, vendor_id)
    if not vendor:
        raise NotFoundError("Vendor not found", entity="vendor", entity_id=vendor_id)
    return vendor


def create_vendor(*, patch: dict) -> Vendor:
    """
    Create a new vendor from a validated patch.

    Raises:
        ValidationError: performance_score outside 0..100
    """
    _check_score(patch)

    vendor = Vendor(total_due_cents=0, performance_score=100)
    for key, value in patch.items():
        if key in VENDOR_MUTABLE_FIELDS and value is not None:
            setattr(vendor, key, value)

    db.session.add(vendor)
    db.session.commit()
    return vendor


def update_vendor(*, vendor_id: int, patch: dict) -> Vendor:
    _check_score(patch)
    vendor = get_vendor(vendor_id)
    for key, value in patch.items():
        if key in VENDOR_MUTABLE_FIELDS:
            setattr(vendor, key, value)

    db.session.commit()
    return vendor


def delete_vendor(vendor_id: int) -> None:
    vendor = get_vendor(vendor_id)

    if db.session.query(PurchaseOrder.id).filter_by(vendor_id=vendor.id).first():
        raise ConflictError("Vendor has purchase orders and cannot be deleted")

    db.session.delete(vendor)
    db.session.commit()
