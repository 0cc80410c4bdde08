# Overview: Service-layer operations for dashboard reporting; aggregates over completed sales orders.

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Product, SalesOrder, SalesOrderItem
from bizops.time_utils import utcnow


def _month_start(dt: datetime) -> datetime:
    return dt.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _previous_month_start(dt: datetime) -> datetime:
    return _month_start(_month_start(dt) - timedelta(days=1))


def _completed_totals(start: datetime, end: datetime | None = None) -> tuple[int, int]:
    query = db.session.query(
        func.coalesce(func.sum(SalesOrder.total_cents), 0),
        func.count(SalesOrder.id),
    ).filter(
        SalesOrder.status == "completed",
        SalesOrder.created_at >= start,
    )
    if end is not None:
        query = query.filter(SalesOrder.created_at < end)

    revenue, count = query.one()
    return int(revenue or 0), int(count or 0)


def dashboard_metrics(now: datetime | None = None) -> dict:
    """
    Headline numbers for the dashboard.

    Revenue and order counts cover completed orders only, this calendar
    month versus the previous one. Inventory value is price × on-hand
    quantity over active products.
    """
    now = now or utcnow()
    this_month = _month_start(now)
    last_month = _previous_month_start(now)

    current_revenue, current_orders = _completed_totals(this_month)
    previous_revenue, previous_orders = _completed_totals(last_month, this_month)

    customers = db.session.query(func.count(Customer.id)).scalar() or 0
    inventory_value = (
        db.session.query(func.coalesce(func.sum(Product.price_cents * Product.quantity), 0))
        .filter(Product.is_active.is_(True))
        .scalar()
    )

    return {
        "revenue_cents": {"current": current_revenue, "previous": previous_revenue},
        "orders": {"current": current_orders, "previous": previous_orders},
        "customers": int(customers),
        "inventory_value_cents": int(inventory_value or 0),
    }


def sales_analytics(days: int = 30, now: datetime | None = None) -> list[dict]:
    """Per-day completed sales for the trailing window, oldest day first."""
    now = now or utcnow()
    start = now - timedelta(days=days)
    day = func.date(SalesOrder.created_at)

    rows = (
        db.session.query(
            day.label("day"),
            func.coalesce(func.sum(SalesOrder.total_cents), 0).label("total_cents"),
            func.count(SalesOrder.id).label("count"),
        )
        .filter(
            SalesOrder.status == "completed",
            SalesOrder.created_at >= start,
        )
        .group_by(day)
        .order_by(day)
        .all()
    )

    return [
        {
            "date": str(row.day),
            "total_cents": int(row.total_cents or 0),
            "count": int(row.count or 0),
        }
        for row in rows
    ]


def top_products(limit: int = 5) -> list[dict]:
    """Best sellers by completed revenue."""
    revenue = func.sum(SalesOrderItem.line_total_cents)

    rows = (
        db.session.query(
            SalesOrderItem.product_id,
            Product.name,
            func.sum(SalesOrderItem.quantity).label("total_sold"),
            revenue.label("total_revenue_cents"),
        )
        .join(Product, Product.id == SalesOrderItem.product_id)
        .join(SalesOrder, SalesOrder.id == SalesOrderItem.sales_order_id)
        .filter(SalesOrder.status == "completed")
        .group_by(SalesOrderItem.product_id, Product.name)
        .order_by(revenue.desc())
        .limit(limit)
        .all()
    )

    return [
        {
            "product_id": row.product_id,
            "name": row.name,
            "total_sold": int(row.total_sold or 0),
            "total_revenue_cents": int(row.total_revenue_cents or 0),
        }
        for row in rows
    ]
