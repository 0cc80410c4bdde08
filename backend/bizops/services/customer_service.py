# Overview: Service-layer operations for customers; encapsulates business logic and database work.

"""
Customer Service

Customers carry a running balance (`total_due_cents`). The balance is
never written through this module's update path; it moves only when an
unpaid sales order is recorded or a payment is taken.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Customer, Payment, SalesOrder
from ..validation import ConflictError, NotFoundError

CUSTOMER_MUTABLE_FIELDS = {"name", "email", "phone", "address"}


def list_customers() -> list[Customer]:
    return (
        db.session.query(Customer)
        .order_by(Customer.created_at.desc(), Customer.id.desc())
        .all()
    )


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError("Customer not found", entity="customer", entity_id=customer_id)
    return customer


def create_customer(*, patch: dict) -> Customer:
    customer = Customer(total_due_cents=0)
    for key, value in patch.items():
        if key in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, key, value)

    db.session.add(customer)
    db.session.commit()
    return customer


def update_customer(*, customer_id: int, patch: dict) -> Customer:
    customer = get_customer(customer_id)
    for key, value in patch.items():
        if key in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, key, value)

    db.session.commit()
    return customer


def delete_customer(customer_id: int) -> None:
    """
    Hard delete. Refused while orders or payments still reference the
    customer so history is never orphaned.
    """
    customer = get_customer(customer_id)

    has_orders = db.session.query(SalesOrder.id).filter_by(customer_id=customer.id).first()
    has_payments = db.session.query(Payment.id).filter_by(customer_id=customer.id).first()
    if has_orders or has_payments:
        raise ConflictError("Customer has sales orders or payments and cannot be deleted")

    db.session.delete(customer)
    db.session.commit()
