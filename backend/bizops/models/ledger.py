from __future__ import annotations

from ..extensions import db
from bizops.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer master data with a running balance.

    `total_due_cents` grows when an order for the customer is recorded
    unpaid and shrinks when a payment is recorded against the customer.
    """
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.Text, nullable=True)

    total_due_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "total_due_cents": self.total_due_cents,
            "created_at": to_utc_z(self.created_at),
        }


class Vendor(db.Model):
    """Supplier referenced by purchase orders."""
    __tablename__ = "vendors"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.Text, nullable=True)

    total_due_cents = db.Column(db.Integer, nullable=False, default=0)
    performance_score = db.Column(db.Integer, nullable=False, default=100)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def __repr__(self) -> str:
        return f"<Vendor id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "total_due_cents": self.total_due_cents,
            "performance_score": self.performance_score,
            "created_at": to_utc_z(self.created_at),
        }


class Payment(db.Model):
    """
    Money received, optionally against a customer and/or a sales order.

    IMMUTABLE: there is no update or delete path for payments.
    """
    __tablename__ = "payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    sales_order_id = db.Column(db.Integer, db.ForeignKey("sales_orders.id"), nullable=True, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)

    # cash, card, transfer
    method = db.Column(db.String(16), nullable=False)
    reference = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "sales_order_id": self.sales_order_id,
            "amount_cents": self.amount_cents,
            "method": self.method,
            "reference": self.reference,
            "created_at": to_utc_z(self.created_at),
        }
