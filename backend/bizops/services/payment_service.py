# Overview: Service-layer operations for payments; records money received and settles balances.

"""
Payment Service

Payments are append-only. Recording one may touch two other rows in the
same unit of work:

- the sales order it pays: payment_status becomes "paid" once the sum of
  its payments covers the total, otherwise "partial"
- the customer it belongs to: total_due_cents shrinks by the amount
  (never below zero)

When only a sales order is given, the payment inherits the order's
customer.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Payment, SalesOrder
from ..validation import (
    NotFoundError,
    ValidationError,
    coerce_int,
    coerce_money_cents,
    require_choice,
)
from .transaction import unit_of_work


PAYMENT_METHODS = {"cash", "card", "transfer"}
PAYMENT_FIELDS = {"customer_id", "sales_order_id", "amount_cents", "method", "reference"}


def _parse_payment(payload: dict) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    for key in payload:
        if key not in PAYMENT_FIELDS:
            raise ValidationError(f"Field not allowed: {key}", field=key)

    if payload.get("amount_cents") is None:
        raise ValidationError("amount_cents is required", field="amount_cents")
    amount = coerce_money_cents(payload["amount_cents"], "amount_cents")
    if amount == 0:
        raise ValidationError("amount_cents must be > 0", field="amount_cents")

    method = require_choice(payload.get("method"), PAYMENT_METHODS, "method")

    reference = payload.get("reference")
    if reference is not None:
        if not isinstance(reference, str):
            raise ValidationError("reference must be a string", field="reference")
        reference = reference.strip()[:128] or None

    customer_id = payload.get("customer_id")
    if customer_id is not None:
        customer_id = coerce_int(customer_id, "customer_id")
    sales_order_id = payload.get("sales_order_id")
    if sales_order_id is not None:
        sales_order_id = coerce_int(sales_order_id, "sales_order_id")

    return {
        "amount_cents": amount,
        "method": method,
        "reference": reference,
        "customer_id": customer_id,
        "sales_order_id": sales_order_id,
    }


def create_payment(payload: dict) -> Payment:
    """
    Record a payment.

    Raises:
        ValidationError: bad amount/method, or customer does not match the order
        NotFoundError: referenced customer or order does not exist
    """
    data = _parse_payment(payload)

    with unit_of_work():
        order = None
        if data["sales_order_id"] is not None:
            order = db.session.get(SalesOrder, data["sales_order_id"])
            if not order:
                raise NotFoundError("Sales order not found", entity="sales_order", entity_id=data["sales_order_id"])
            if data["customer_id"] is None:
                data["customer_id"] = order.customer_id
            elif order.customer_id is not None and order.customer_id != data["customer_id"]:
                raise ValidationError("customer_id does not match the sales order's customer", field="customer_id")

        customer = None
        if data["customer_id"] is not None:
            customer = db.session.get(Customer, data["customer_id"])
            if not customer:
                raise NotFoundError("Customer not found", entity="customer", entity_id=data["customer_id"])

        payment = Payment(**data)
        db.session.add(payment)
        db.session.flush()

        if order is not None:
            paid = (
                db.session.query(func.coalesce(func.sum(Payment.amount_cents), 0))
                .filter(Payment.sales_order_id == order.id)
                .scalar()
            )
            order.payment_status = "paid" if paid >= order.total_cents else "partial"

        if customer is not None:
            customer.total_due_cents = max(0, customer.total_due_cents - data["amount_cents"])

    current_app.logger.info(
        "Payment %s recorded: amount_cents=%d method=%s order=%s customer=%s",
        payment.id, payment.amount_cents, payment.method, payment.sales_order_id, payment.customer_id,
    )
    return payment


def get_payment(payment_id: int) -> Payment:
    payment = db.session.get(Payment, payment_id)
    if not payment:
        raise NotFoundError("Payment not found", entity="payment", entity_id=payment_id)
    return payment


def list_payments() -> list[Payment]:
    return db.session.query(Payment).order_by(Payment.created_at.desc(), Payment.id.desc()).all()


def list_customer_payments(customer_id: int) -> list[Payment]:
    if not db.session.get(Customer, customer_id):
        raise NotFoundError("Customer not found", entity="customer", entity_id=customer_id)
    return (
        db.session.query(Payment)
        .filter(Payment.customer_id == customer_id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .all()
    )
