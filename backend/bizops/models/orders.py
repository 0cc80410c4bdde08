from __future__ import annotations

from ..extensions import db
from bizops.time_utils import to_utc_z, utcnow


SALES_ORDER_STATUSES = {"pending", "completed", "cancelled"}
PAYMENT_STATUSES = {"paid", "unpaid", "partial"}
PURCHASE_ORDER_STATUSES = {"pending", "confirmed", "received", "cancelled"}


class SalesOrder(db.Model):
    """
    Customer-facing sale. Created together with its items and the stock
    decrement in one unit of work (see services/order_service.py).

    INVARIANT: total_cents == subtotal_cents - discount_cents + tax_cents,
    and subtotal_cents == sum(item.line_total_cents).
    """
    __tablename__ = "sales_orders"
    __table_args__ = (
        db.CheckConstraint("subtotal_cents >= 0", name="ck_sales_orders_subtotal_nonneg"),
        db.CheckConstraint("discount_cents >= 0", name="ck_sales_orders_discount_nonneg"),
        db.CheckConstraint("tax_cents >= 0", name="ck_sales_orders_tax_nonneg"),
        db.CheckConstraint("total_cents >= 0", name="ck_sales_orders_total_nonneg"),
        db.Index("ix_sales_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Time-derived, e.g. "SO-1760659200123"
    order_number = db.Column(db.String(64), nullable=False, unique=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    # pending, completed, cancelled
    status = db.Column(db.String(16), nullable=False, default="pending")
    # paid, unpaid, partial
    payment_status = db.Column(db.String(16), nullable=False, default="unpaid")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<SalesOrder id={self.id} number={self.order_number!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "user_id": self.user_id,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "status": self.status,
            "payment_status": self.payment_status,
            "created_at": to_utc_z(self.created_at),
        }


class SalesOrderItem(db.Model):
    """Line of a sales order. Price is a snapshot taken at sale time; immutable."""
    __tablename__ = "sales_order_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_sales_order_items_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sales_order_id = db.Column(db.Integer, db.ForeignKey("sales_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sales_order_id": self.sales_order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }


class PurchaseOrder(db.Model):
    """
    Vendor-facing procurement request.

    LIFECYCLE:
    pending -> confirmed -> received (terminal)
    pending | confirmed -> cancelled (terminal)

    Creating a purchase order never changes product quantity.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.CheckConstraint("subtotal_cents >= 0", name="ck_purchase_orders_subtotal_nonneg"),
        db.CheckConstraint("tax_cents >= 0", name="ck_purchase_orders_tax_nonneg"),
        db.CheckConstraint("total_cents >= 0", name="ck_purchase_orders_total_nonneg"),
        db.Index("ix_purchase_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Time-derived, e.g. "PO-1760659200123"
    po_number = db.Column(db.String(64), nullable=False, unique=True)

    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default="pending")
    expected_date = db.Column(db.DateTime(timezone=True), nullable=True)
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<PurchaseOrder id={self.id} number={self.po_number!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "po_number": self.po_number,
            "vendor_id": self.vendor_id,
            "user_id": self.user_id,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "status": self.status,
            "expected_date": to_utc_z(self.expected_date) if self.expected_date else None,
            "received_at": to_utc_z(self.received_at) if self.received_at else None,
            "created_at": to_utc_z(self.created_at),
        }


class PurchaseOrderItem(db.Model):
    """Line of a purchase order (incoming stock at unit cost)."""
    __tablename__ = "purchase_order_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_purchase_order_items_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_cost_cents": self.unit_cost_cents,
            "line_total_cents": self.line_total_cents,
        }
