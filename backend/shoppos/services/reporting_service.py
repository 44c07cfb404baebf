# Overview: Sales aggregations for the dashboard and report screens.

from __future__ import annotations

import csv
import io
from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Brand, Category, Product, Sale, SaleLine
from .inventory_service import low_stock_products
from ..time_utils import parse_date_range, to_utc_z


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def _range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt, end_dt = parse_date_range(start, end)
    except ValueError as exc:
        raise ReportError(f"Invalid date: {exc}")
    if start_dt and end_dt and start_dt > end_dt:
        raise ReportError("start_date must be on or before end_date")
    return start_dt, end_dt


def _in_range(query, column, start_dt, end_dt):
    if start_dt:
        query = query.filter(column >= start_dt)
    if end_dt:
        query = query.filter(column <= end_dt)
    return query


def daily_sales_and_profit(*, start: str | None, end: str | None) -> dict:
    """
    Per-day revenue, profit and order count.

    profit = sum((unit_price - unit_cost) * quantity), using the cost price
    recorded on each sale line, so later cost changes leave past days alone.
    """
    start_dt, end_dt = _range(start, end)
    day = func.date(Sale.created_at)

    revenue_rows = _in_range(
        db.session.query(
            day.label("day"),
            func.count(Sale.id).label("orders"),
            func.coalesce(func.sum(Sale.total_amount), 0).label("revenue"),
        ),
        Sale.created_at, start_dt, end_dt,
    ).group_by("day").order_by("day").all()

    profit_rows = _in_range(
        db.session.query(
            day.label("day"),
            func.coalesce(
                func.sum((SaleLine.unit_price - SaleLine.unit_cost) * SaleLine.quantity), 0
            ).label("profit"),
        )
        .join(SaleLine, SaleLine.sale_id == Sale.id),
        Sale.created_at, start_dt, end_dt,
    ).group_by("day").all()
    profit_by_day = {str(row.day): int(row.profit or 0) for row in profit_rows}

    rows = [
        {
            "date": str(row.day),
            "orders": int(row.orders or 0),
            "revenue": int(row.revenue or 0),
            "profit": profit_by_day.get(str(row.day), 0),
        }
        for row in revenue_rows
    ]
    return {
        "start": to_utc_z(start_dt) if start_dt else None,
        "end": to_utc_z(end_dt) if end_dt else None,
        "rows": rows,
        "total_revenue": sum(r["revenue"] for r in rows),
        "total_profit": sum(r["profit"] for r in rows),
        "total_orders": sum(r["orders"] for r in rows),
    }


def top_selling_products(*, start: str | None, end: str | None, limit: int = 5) -> list[dict]:
    if limit <= 0:
        raise ReportError("limit must be positive")
    start_dt, end_dt = _range(start, end)

    revenue = func.sum(SaleLine.total_price)
    rows = _in_range(
        db.session.query(
            Product.id.label("product_id"),
            Product.name.label("name"),
            Product.sku.label("sku"),
            func.sum(SaleLine.quantity).label("quantity"),
            revenue.label("revenue"),
        )
        .join(SaleLine, SaleLine.product_id == Product.id)
        .join(Sale, Sale.id == SaleLine.sale_id),
        Sale.created_at, start_dt, end_dt,
    ).group_by(Product.id, Product.name, Product.sku).order_by(revenue.desc(), Product.name.asc()).limit(limit).all()

    return [
        {
            "product_id": row.product_id,
            "name": row.name,
            "sku": row.sku,
            "quantity": int(row.quantity or 0),
            "revenue": int(row.revenue or 0),
        }
        for row in rows
    ]


def recent_sales(limit: int = 10) -> list[Sale]:
    return db.session.query(Sale).order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit).all()


def summary() -> dict:
    """Dashboard totals."""
    total_revenue = db.session.query(func.coalesce(func.sum(Sale.total_amount), 0)).scalar()
    threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 10)
    low_stock = low_stock_products(threshold)

    return {
        "total_revenue": int(total_revenue or 0),
        "total_sales": db.session.query(func.count(Sale.id)).scalar() or 0,
        "product_count": db.session.query(func.count(Product.id)).filter(Product.is_active.is_(True)).scalar() or 0,
        "category_count": db.session.query(func.count(Category.id)).filter(Category.is_active.is_(True)).scalar() or 0,
        "brand_count": db.session.query(func.count(Brand.id)).filter(Brand.is_active.is_(True)).scalar() or 0,
        "low_stock_count": len(low_stock),
        "low_stock_products": [p.to_dict() for p in low_stock],
        "recent_sales": [s.to_dict() for s in recent_sales(5)],
    }


SALES_CSV_COLUMNS = [
    "sale_number",
    "created_at",
    "customer_name",
    "payment_method",
    "total_amount",
    "paid_amount",
    "change_amount",
]


def sales_csv(*, start: str | None, end: str | None) -> str:
    start_dt, end_dt = _range(start, end)
    sales = _in_range(db.session.query(Sale), Sale.created_at, start_dt, end_dt).order_by(Sale.id.asc()).all()

    out = io.StringIO()
    writer = csv.DictWriter(out, fieldnames=SALES_CSV_COLUMNS, extrasaction="ignore")
    writer.writeheader()
    for sale in sales:
        writer.writerow(sale.to_dict())
    return out.getvalue()
