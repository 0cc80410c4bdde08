# Overview: Order processor; sales and purchase order creation as single units of work.

"""
Order Processing Service

Sales order creation is the one correctness-sensitive path in the system:
the header insert, the item inserts and the stock decrements either all
commit together or none of them do. Purchase order creation persists
header + items atomically and never touches stock.

ORDERING (within one call):
    validate payload -> load referenced rows -> insert header
    -> insert items -> decrement stock -> commit -> publish events

STOCK POLICY:
- ALLOW_NEGATIVE_STOCK=True (default): unconditional
  `quantity = quantity - :qty`. Concurrent or oversized sales may drive
  quantity below zero; there is no version column and no retry.
- ALLOW_NEGATIVE_STOCK=False: the decrement carries
  `WHERE quantity >= :qty`; a line that cannot be covered aborts the whole
  order with InsufficientStockError.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db, relay
from ..models import (
    Customer,
    Product,
    PurchaseOrder,
    PurchaseOrderItem,
    SalesOrder,
    SalesOrderItem,
    User,
    Vendor,
)
from ..models.orders import PAYMENT_STATUSES, PURCHASE_ORDER_STATUSES, SALES_ORDER_STATUSES
from ..validation import (
    ConflictError,
    NotFoundError,
    MAX_MONEY_CENTS,
    MAX_QUANTITY,
    ValidationError,
    coerce_datetime,
    coerce_int,
    coerce_money_cents,
    require_choice,
)
from bizops.time_utils import epoch_millis, utcnow
from .event_relay import EVENT_LOW_STOCK_ALERT, EVENT_ORDER_UPDATE
from .session_service import Principal
from .transaction import unit_of_work


class InsufficientStockError(ConflictError):
    """Raised when negative stock is disallowed and a line cannot be covered."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


# pending -> confirmed -> received; pending | confirmed -> cancelled
PURCHASE_ORDER_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"received", "cancelled"},
    "received": set(),
    "cancelled": set(),
}

SALES_HEADER_FIELDS = {
    "customer_id", "subtotal_cents", "discount_cents", "tax_cents",
    "total_cents", "status", "payment_status",
}
SALES_LINE_FIELDS = {"product_id", "quantity", "unit_price_cents", "line_total_cents"}

PURCHASE_HEADER_FIELDS = {"vendor_id", "expected_date", "subtotal_cents", "tax_cents", "total_cents"}
PURCHASE_LINE_FIELDS = {"product_id", "quantity", "unit_cost_cents", "line_total_cents"}


@dataclass
class LineRequest:
    product_id: int
    quantity: int
    unit_amount_cents: int | None
    line_total_cents: int | None


# =============================================================================
# PAYLOAD VALIDATION (runs before any write)
# =============================================================================

def _require_dict(value, field: str) -> dict:
    if value is None:
        value = {}
    if not isinstance(value, dict):
        raise ValidationError(f"{field} must be an object", field=field)
    return value


def _reject_unknown(payload: dict, allowed: set[str], prefix: str) -> None:
    for key in payload:
        if key not in allowed:
            raise ValidationError(f"Field not allowed: {prefix}{key}", field=prefix + key)


def _optional_money(payload: dict, key: str, prefix: str) -> int | None:
    raw = payload.get(key)
    if raw is None:
        return None
    return coerce_money_cents(raw, prefix + key)


def _parse_lines(items, unit_key: str, allowed: set[str]) -> list[LineRequest]:
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list", field="items")

    lines: list[LineRequest] = []
    for i, raw in enumerate(items):
        prefix = f"items[{i}]."
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{i}] must be an object", field=f"items[{i}]")
        _reject_unknown(raw, allowed, prefix)

        if raw.get("product_id") is None:
            raise ValidationError(f"{prefix}product_id is required", field=prefix + "product_id")
        product_id = coerce_int(raw["product_id"], prefix + "product_id")

        if raw.get("quantity") is None:
            raise ValidationError(f"{prefix}quantity is required", field=prefix + "quantity")
        quantity = coerce_int(raw["quantity"], prefix + "quantity")
        if quantity < 1:
            raise ValidationError(f"{prefix}quantity must be >= 1", field=prefix + "quantity")
        if quantity > MAX_QUANTITY:
            raise ValidationError(f"{prefix}quantity cannot exceed {MAX_QUANTITY}", field=prefix + "quantity")

        lines.append(LineRequest(
            product_id=product_id,
            quantity=quantity,
            unit_amount_cents=_optional_money(raw, unit_key, prefix),
            line_total_cents=_optional_money(raw, "line_total_cents", prefix),
        ))
    return lines


def _load_products(lines: list[LineRequest]) -> dict[int, Product]:
    ids = {line.product_id for line in lines}
    products = db.session.query(Product).filter(Product.id.in_(ids)).all()
    by_id = {p.id: p for p in products}
    for i, line in enumerate(lines):
        if line.product_id not in by_id:
            raise NotFoundError(
                f"Product not found: items[{i}].product_id={line.product_id}",
                entity="product",
                entity_id=line.product_id,
            )
    return by_id


def _resolve_line_totals(lines: list[LineRequest], products: dict[int, Product], default_attr: str) -> list[tuple[LineRequest, int, int]]:
    """
    Fill in unit amounts from the product when omitted and compute each
    line total as unit × quantity. A client-supplied line total must agree.
    """
    resolved = []
    for i, line in enumerate(lines):
        unit = line.unit_amount_cents
        if unit is None:
            unit = getattr(products[line.product_id], default_attr)
            if unit is None:
                raise ValidationError(
                    f"items[{i}] has no unit amount and the product has none on file",
                    field=f"items[{i}]",
                )
        line_total = unit * line.quantity
        if line_total > MAX_MONEY_CENTS:
            raise ValidationError(
                f"items[{i}] line total exceeds {MAX_MONEY_CENTS}; reduce items[{i}].quantity",
                field=f"items[{i}].quantity",
            )
        if line.line_total_cents is not None and line.line_total_cents != line_total:
            raise ValidationError(
                f"items[{i}].line_total_cents must equal unit amount x quantity ({line_total})",
                field=f"items[{i}].line_total_cents",
            )
        resolved.append((line, unit, line_total))
    return resolved


def _check_ceiling(computed: int, field: str) -> None:
    if computed > MAX_MONEY_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_MONEY_CENTS}", field=field)


def _check_declared(declared: int | None, computed: int, field: str) -> None:
    if declared is not None and declared != computed:
        raise ValidationError(f"{field} does not match computed value {computed}", field=field)


def _next_order_number(model, column, prefix: str) -> str:
    """Time-derived, unique order number; bumps the millisecond on collision."""
    millis = epoch_millis()
    while True:
        candidate = f"{prefix}-{millis}"
        exists = db.session.query(model.id).filter(column == candidate).first()
        if not exists:
            return candidate
        millis += 1


# =============================================================================
# SALES ORDERS
# =============================================================================

def _decrement_stock(line: LineRequest, allow_negative: bool) -> None:
    stmt = update(Product).where(Product.id == line.product_id)
    if not allow_negative:
        stmt = stmt.where(Product.quantity >= line.quantity)
    stmt = stmt.values(quantity=Product.quantity - line.quantity).execution_options(synchronize_session=False)

    result = db.session.execute(stmt)
    if result.rowcount:
        return

    if not allow_negative:
        on_hand = db.session.query(Product.quantity).filter(Product.id == line.product_id).scalar()
        if on_hand is not None:
            raise InsufficientStockError(
                "Insufficient stock to complete sale",
                details={
                    "product_id": line.product_id,
                    "requested_quantity": line.quantity,
                    "on_hand": on_hand,
                },
            )
    raise NotFoundError("Product not found", entity="product", entity_id=line.product_id)


def create_sales_order(principal: Principal, order: dict, items) -> dict:
    """
    Create a sales order, its items and the stock decrements atomically.

    Args:
        principal: Authenticated caller; stamped as the order's user_id
        order: Header payload (customer_id, discount_cents, tax_cents,
            optional subtotal_cents/total_cents, status, payment_status)
        items: Non-empty list of {product_id, quantity, unit_price_cents?,
            line_total_cents?}

    Returns:
        Order detail dict (same shape as get_sales_order)

    Raises:
        ValidationError: malformed payload (nothing written)
        NotFoundError: missing product or customer (nothing written)
        InsufficientStockError: only when ALLOW_NEGATIVE_STOCK is off
    """
    order = _require_dict(order, "order")
    _reject_unknown(order, SALES_HEADER_FIELDS, "order.")

    customer_id = None
    if order.get("customer_id") is not None:
        customer_id = coerce_int(order["customer_id"], "order.customer_id")

    discount = _optional_money(order, "discount_cents", "order.") or 0
    tax = _optional_money(order, "tax_cents", "order.") or 0
    declared_subtotal = _optional_money(order, "subtotal_cents", "order.")
    declared_total = _optional_money(order, "total_cents", "order.")
    status = require_choice(order.get("status", "pending"), SALES_ORDER_STATUSES, "order.status")
    payment_status = require_choice(order.get("payment_status", "unpaid"), PAYMENT_STATUSES, "order.payment_status")

    lines = _parse_lines(items, "unit_price_cents", SALES_LINE_FIELDS)
    allow_negative = current_app.config.get("ALLOW_NEGATIVE_STOCK", True)

    sold: "OrderedDict[int, int]" = OrderedDict()
    for line in lines:
        sold[line.product_id] = sold.get(line.product_id, 0) + line.quantity

    with unit_of_work():
        # Reads first: every referenced row must exist before anything is written
        if customer_id is not None and not db.session.get(Customer, customer_id):
            raise NotFoundError("Customer not found", entity="customer", entity_id=customer_id)

        products = _load_products(lines)
        resolved = _resolve_line_totals(lines, products, "price_cents")

        subtotal = sum(line_total for _, _, line_total in resolved)
        _check_ceiling(subtotal, "order.subtotal_cents")
        _check_declared(declared_subtotal, subtotal, "order.subtotal_cents")

        total = subtotal - discount + tax
        if total < 0:
            raise ValidationError("order.discount_cents cannot exceed subtotal plus tax", field="order.discount_cents")
        _check_ceiling(total, "order.total_cents")
        _check_declared(declared_total, total, "order.total_cents")

        sales_order = SalesOrder(
            order_number=_next_order_number(SalesOrder, SalesOrder.order_number, "SO"),
            customer_id=customer_id,
            user_id=principal.user_id,
            subtotal_cents=subtotal,
            discount_cents=discount,
            tax_cents=tax,
            total_cents=total,
            status=status,
            payment_status=payment_status,
            created_at=utcnow(),
        )
        db.session.add(sales_order)
        db.session.flush()

        for line, unit, line_total in resolved:
            db.session.add(SalesOrderItem(
                sales_order_id=sales_order.id,
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price_cents=unit,
                line_total_cents=line_total,
            ))
        db.session.flush()

        for line in lines:
            _decrement_stock(line, allow_negative)

        if customer_id is not None and payment_status != "paid":
            db.session.execute(
                update(Customer)
                .where(Customer.id == customer_id)
                .values(total_due_cents=Customer.total_due_cents + total)
                .execution_options(synchronize_session=False)
            )

    current_app.logger.info(
        "Sales order %s created by user %s with %d line(s), total_cents=%d",
        sales_order.order_number, principal.user_id, len(lines), total,
    )

    detail = get_sales_order(sales_order.id)
    _after_sales_order_commit(principal, detail, sold)
    return detail


def _after_sales_order_commit(principal: Principal, detail: dict, sold: dict[int, int]) -> None:
    """
    Fire-and-forget side effects once the order is durable. Failures here
    are logged and never undo or fail the committed order.
    """
    from .notification_service import create_notification

    relay.publish(EVENT_ORDER_UPDATE, {"action": "created", "kind": "sales_order", "order": detail["order"]})

    try:
        products = db.session.query(Product).filter(Product.id.in_(list(sold))).all()
        for product in products:
            before = product.quantity + sold[product.id]
            if product.quantity <= product.low_stock_threshold < before:
                relay.publish(EVENT_LOW_STOCK_ALERT, product.to_dict())
                create_notification(
                    user_id=principal.user_id,
                    title="Low stock",
                    message=f"{product.name} is down to {product.quantity} (threshold {product.low_stock_threshold})",
                    type="warning",
                )
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to publish low-stock alerts for %s", detail["order"]["order_number"])


def get_sales_order(order_id: int) -> dict:
    """Header, items (with product summary) and customer, via explicit joins."""
    order = db.session.get(SalesOrder, order_id)
    if not order:
        raise NotFoundError("Sales order not found", entity="sales_order", entity_id=order_id)

    rows = (
        db.session.query(SalesOrderItem, Product)
        .join(Product, Product.id == SalesOrderItem.product_id)
        .filter(SalesOrderItem.sales_order_id == order.id)
        .order_by(SalesOrderItem.id.asc())
        .all()
    )
    customer = db.session.get(Customer, order.customer_id) if order.customer_id else None
    user = db.session.get(User, order.user_id) if order.user_id else None

    return {
        "order": order.to_dict(),
        "items": [dict(item.to_dict(), product=product.to_summary()) for item, product in rows],
        "customer": customer.to_dict() if customer else None,
        "user": {"id": user.id, "username": user.username} if user else None,
    }


def list_sales_orders() -> list[SalesOrder]:
    return (
        db.session.query(SalesOrder)
        .order_by(SalesOrder.created_at.desc(), SalesOrder.id.desc())
        .all()
    )


def update_sales_order(order_id: int, patch: dict) -> dict:
    """
    Update status and/or payment_status. Items and amounts are immutable;
    a cancelled order cannot be reopened.
    """
    patch = _require_dict(patch, "body")
    _reject_unknown(patch, {"status", "payment_status"}, "")
    if not patch:
        raise ValidationError("Nothing to update", field="status")

    order = db.session.get(SalesOrder, order_id)
    if not order:
        raise NotFoundError("Sales order not found", entity="sales_order", entity_id=order_id)

    if "status" in patch:
        new_status = require_choice(patch["status"], SALES_ORDER_STATUSES, "status")
        if order.status == "cancelled" and new_status != "cancelled":
            raise ConflictError("Cancelled sales orders cannot be reopened")
        order.status = new_status
    if "payment_status" in patch:
        order.payment_status = require_choice(patch["payment_status"], PAYMENT_STATUSES, "payment_status")

    db.session.commit()
    relay.publish(EVENT_ORDER_UPDATE, {"action": "updated", "kind": "sales_order", "order": order.to_dict()})
    return get_sales_order(order.id)


# =============================================================================
# PURCHASE ORDERS
# =============================================================================

def create_purchase_order(principal: Principal, order: dict, items) -> dict:
    """
    Create a purchase order with its items in one unit of work.

    Never changes product quantity; stock arrives through the status
    workflow (see update_purchase_order_status).
    """
    order = _require_dict(order, "order")
    _reject_unknown(order, PURCHASE_HEADER_FIELDS, "order.")

    if order.get("vendor_id") is None:
        raise ValidationError("order.vendor_id is required", field="order.vendor_id")
    vendor_id = coerce_int(order["vendor_id"], "order.vendor_id")

    expected_date = None
    if order.get("expected_date") is not None:
        expected_date = coerce_datetime(order["expected_date"], "order.expected_date")

    tax = _optional_money(order, "tax_cents", "order.") or 0
    declared_subtotal = _optional_money(order, "subtotal_cents", "order.")
    declared_total = _optional_money(order, "total_cents", "order.")

    lines = _parse_lines(items, "unit_cost_cents", PURCHASE_LINE_FIELDS)

    with unit_of_work():
        if not db.session.get(Vendor, vendor_id):
            raise NotFoundError("Vendor not found", entity="vendor", entity_id=vendor_id)

        products = _load_products(lines)
        resolved = _resolve_line_totals(lines, products, "cost_cents")

        subtotal = sum(line_total for _, _, line_total in resolved)
        _check_ceiling(subtotal, "order.subtotal_cents")
        _check_declared(declared_subtotal, subtotal, "order.subtotal_cents")
        total = subtotal + tax
        _check_ceiling(total, "order.total_cents")
        _check_declared(declared_total, total, "order.total_cents")

        purchase_order = PurchaseOrder(
            po_number=_next_order_number(PurchaseOrder, PurchaseOrder.po_number, "PO"),
            vendor_id=vendor_id,
            user_id=principal.user_id,
            subtotal_cents=subtotal,
            tax_cents=tax,
            total_cents=total,
            status="pending",
            expected_date=expected_date,
            created_at=utcnow(),
        )
        db.session.add(purchase_order)
        db.session.flush()

        for line, unit, line_total in resolved:
            db.session.add(PurchaseOrderItem(
                purchase_order_id=purchase_order.id,
                product_id=line.product_id,
                quantity=line.quantity,
                unit_cost_cents=unit,
                line_total_cents=line_total,
            ))

    current_app.logger.info(
        "Purchase order %s created by user %s for vendor %s",
        purchase_order.po_number, principal.user_id, vendor_id,
    )

    detail = get_purchase_order(purchase_order.id)
    relay.publish(EVENT_ORDER_UPDATE, {"action": "created", "kind": "purchase_order", "order": detail["order"]})
    return detail


def update_purchase_order_status(order_id: int, status) -> dict:
    """
    Apply a lifecycle transition.

    On "received", quantities are added to stock in the same unit of work
    only when RECEIVE_UPDATES_STOCK is enabled; otherwise reconciliation is
    left to a manual adjustment.
    """
    new_status = require_choice(status, PURCHASE_ORDER_STATUSES, "status")
    receive_updates_stock = current_app.config.get("RECEIVE_UPDATES_STOCK", False)

    with unit_of_work():
        order = db.session.get(PurchaseOrder, order_id)
        if not order:
            raise NotFoundError("Purchase order not found", entity="purchase_order", entity_id=order_id)

        if new_status not in PURCHASE_ORDER_TRANSITIONS[order.status]:
            raise ConflictError(f"Cannot change purchase order from {order.status} to {new_status}")

        order.status = new_status
        if new_status == "received":
            order.received_at = utcnow()
            if receive_updates_stock:
                items = db.session.query(PurchaseOrderItem).filter_by(purchase_order_id=order.id).all()
                for item in items:
                    db.session.execute(
                        update(Product)
                        .where(Product.id == item.product_id)
                        .values(quantity=Product.quantity + item.quantity)
                        .execution_options(synchronize_session=False)
                    )

    detail = get_purchase_order(order_id)
    relay.publish(EVENT_ORDER_UPDATE, {"action": "updated", "kind": "purchase_order", "order": detail["order"]})
    return detail


def get_purchase_order(order_id: int) -> dict:
    order = db.session.get(PurchaseOrder, order_id)
    if not order:
        raise NotFoundError("Purchase order not found", entity="purchase_order", entity_id=order_id)

    rows = (
        db.session.query(PurchaseOrderItem, Product)
        .join(Product, Product.id == PurchaseOrderItem.product_id)
        .filter(PurchaseOrderItem.purchase_order_id == order.id)
        .order_by(PurchaseOrderItem.id.asc())
        .all()
    )
    vendor = db.session.get(Vendor, order.vendor_id)
    user = db.session.get(User, order.user_id) if order.user_id else None

    return {
        "order": order.to_dict(),
        "items": [dict(item.to_dict(), product=product.to_summary()) for item, product in rows],
        "vendor": vendor.to_dict() if vendor else None,
        "user": {"id": user.id, "username": user.username} if user else None,
    }


def list_purchase_orders() -> list[PurchaseOrder]:
    return (
        db.session.query(PurchaseOrder)
        .order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())
        .all()
    )
