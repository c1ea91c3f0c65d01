# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

from __future__ import annotations

from datetime import date

from sqlalchemy import Integer, cast, func

from retailpos.extensions import db
from retailpos.models import Sale, SaleItem, Product
from retailpos.services.settings_service import get_low_stock_threshold
from retailpos.time_utils import utcnow

COMPLETED = "completed"


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def _num(value) -> float:
    """Aggregate -> JSON number. SQLite returns SUM(Numeric) as float."""
    if value is None:
        return 0.0
    return round(float(value), 4)


def _sale_day():
    return func.date(Sale.created_at)


def _date_bounds(query, start: date | None, end: date | None):
    if start is not None:
        query = query.filter(_sale_day() >= start.isoformat())
    if end is not None:
        query = query.filter(_sale_day() <= end.isoformat())
    return query


def daily_summary(day: date | None = None) -> dict:
    day = day or utcnow().date()

    sales = (
        db.session.query(
            func.count(Sale.id).label("transaction_count"),
            func.sum(Sale.total).label("total_revenue"),
            func.sum(Sale.tax_amount).label("tax_collected"),
            func.sum(Sale.discount_amount).label("discounts_given"),
        )
        .filter(_sale_day() == day.isoformat(), Sale.status == COMPLETED)
        .one()
    )

    items_sold = (
        db.session.query(func.sum(SaleItem.quantity))
        .join(Sale, Sale.id == SaleItem.sale_id)
        .filter(_sale_day() == day.isoformat(), Sale.status == COMPLETED)
        .scalar()
    )

    count = int(sales.transaction_count or 0)
    revenue = _num(sales.total_revenue)
    return {
        "date": day.isoformat(),
        "total_revenue": revenue,
        "total_transactions": count,
        "total_items_sold": int(items_sold or 0),
        "average_transaction_value": round(revenue / count, 4) if count else 0.0,
        "tax_collected": _num(sales.tax_collected),
        "discounts_given": _num(sales.discounts_given),
    }


def sales_by_date(start: date | None, end: date | None) -> list[dict]:
    """Per-day aggregates over an inclusive date range."""
    if start is None or end is None:
        raise ReportError("start_date and end_date are required")
    if start > end:
        raise ReportError("start_date must be on or before end_date")

    day = _sale_day().label("date")
    rows = (
        db.session.query(
            day,
            func.count(Sale.id).label("transaction_count"),
            func.sum(Sale.total).label("total_revenue"),
            func.sum(Sale.tax_amount).label("tax_collected"),
            func.avg(Sale.total).label("average_transaction_value"),
        )
        .filter(Sale.status == COMPLETED)
        .filter(_sale_day() >= start.isoformat(), _sale_day() <= end.isoformat())
        .group_by(day)
        .order_by(day)
        .all()
    )

    return [
        {
            "date": r.date,
            "transaction_count": int(r.transaction_count),
            "total_revenue": _num(r.total_revenue),
            "tax_collected": _num(r.tax_collected),
            "average_transaction_value": _num(r.average_transaction_value),
        }
        for r in rows
    ]


def sales_by_category(start: date | None = None, end: date | None = None) -> list[dict]:
    category = func.coalesce(Product.category, "Uncategorized").label("category")
    revenue = func.sum(SaleItem.subtotal).label("total_revenue")

    query = (
        db.session.query(
            category,
            func.count(func.distinct(SaleItem.sale_id)).label("transaction_count"),
            func.sum(SaleItem.quantity).label("items_sold"),
            revenue,
        )
        .select_from(SaleItem)
        .join(Product, Product.id == SaleItem.product_id)
        .join(Sale, Sale.id == SaleItem.sale_id)
        .filter(Sale.status == COMPLETED)
    )
    query = _date_bounds(query, start, end)
    rows = query.group_by(category).order_by(revenue.desc()).all()

    return [
        {
            "category": r.category,
            "transaction_count": int(r.transaction_count),
            "items_sold": int(r.items_sold or 0),
            "total_revenue": _num(r.total_revenue),
        }
        for r in rows
    ]


def top_products(start: date | None = None, end: date | None = None, limit: int = 10) -> list[dict]:
    total_sold = func.sum(SaleItem.quantity).label("total_sold")

    query = (
        db.session.query(
            Product.id,
            Product.barcode,
            Product.name,
            Product.category,
            Product.price,
            total_sold,
            func.sum(SaleItem.subtotal).label("total_revenue"),
            func.count(func.distinct(SaleItem.sale_id)).label("transaction_count"),
        )
        .select_from(SaleItem)
        .join(Product, Product.id == SaleItem.product_id)
        .join(Sale, Sale.id == SaleItem.sale_id)
        .filter(Sale.status == COMPLETED)
    )
    query = _date_bounds(query, start, end)
    rows = (
        query.group_by(Product.id)
        .order_by(total_sold.desc(), Product.id.asc())
        .limit(max(1, limit))
        .all()
    )

    return [
        {
            "id": r.id,
            "barcode": r.barcode,
            "name": r.name,
            "category": r.category,
            "price": _num(r.price),
            "total_sold": int(r.total_sold or 0),
            "total_revenue": _num(r.total_revenue),
            "transaction_count": int(r.transaction_count),
        }
        for r in rows
    ]


def hourly_pattern(day: date | None = None) -> list[dict]:
    """24 slots, hours with no sales are zero-filled."""
    day = day or utcnow().date()
    hour = cast(func.strftime("%H", Sale.created_at), Integer).label("hour")

    rows = (
        db.session.query(
            hour,
            func.count(Sale.id).label("transaction_count"),
            func.sum(Sale.total).label("total_revenue"),
        )
        .filter(_sale_day() == day.isoformat(), Sale.status == COMPLETED)
        .group_by(hour)
        .all()
    )

    slots = [
        {"hour": h, "transaction_count": 0, "total_revenue": 0.0}
        for h in range(24)
    ]
    for r in rows:
        slots[int(r.hour)] = {
            "hour": int(r.hour),
            "transaction_count": int(r.transaction_count),
            "total_revenue": _num(r.total_revenue),
        }
    return slots


def payment_methods(start: date | None = None, end: date | None = None) -> list[dict]:
    method = func.coalesce(Sale.payment_method, "Not Specified").label("payment_method")
    revenue = func.sum(Sale.total).label("total_revenue")

    query = db.session.query(
        method,
        func.count(Sale.id).label("transaction_count"),
        revenue,
    ).filter(Sale.status == COMPLETED)
    query = _date_bounds(query, start, end)
    rows = query.group_by(method).order_by(revenue.desc()).all()

    return [
        {
            "payment_method": r.payment_method,
            "transaction_count": int(r.transaction_count),
            "total_revenue": _num(r.total_revenue),
        }
        for r in rows
    ]


def _sales_totals_since(day_filter) -> dict:
    row = (
        db.session.query(
            func.count(Sale.id).label("transaction_count"),
            func.sum(Sale.total).label("total_revenue"),
        )
        .filter(day_filter, Sale.status == COMPLETED)
        .one()
    )
    return {
        "transaction_count": int(row.transaction_count or 0),
        "total_revenue": _num(row.total_revenue),
    }


def dashboard() -> dict:
    today = utcnow().date()
    month_start = today.replace(day=1)
    threshold = get_low_stock_threshold()

    active = db.session.query(Product).filter(Product.is_active.is_(True))
    inventory = {
        "total_products": active.count(),
        "low_stock_count": active.filter(
            Product.stock_quantity > 0, Product.stock_quantity <= threshold
        ).count(),
        "out_of_stock_count": active.filter(Product.stock_quantity == 0).count(),
    }

    total_sold = func.sum(SaleItem.quantity).label("total_sold")
    top_today = (
        db.session.query(Product.id, Product.name, total_sold)
        .select_from(SaleItem)
        .join(Product, Product.id == SaleItem.product_id)
        .join(Sale, Sale.id == SaleItem.sale_id)
        .filter(_sale_day() == today.isoformat(), Sale.status == COMPLETED)
        .group_by(Product.id)
        .order_by(total_sold.desc(), Product.id.asc())
        .limit(5)
        .all()
    )

    return {
        "today": {"date": today.isoformat(), **_sales_totals_since(_sale_day() == today.isoformat())},
        "month": {
            "start_date": month_start.isoformat(),
            **_sales_totals_since(_sale_day() >= month_start.isoformat()),
        },
        "inventory": inventory,
        "top_products": [
            {"id": r.id, "name": r.name, "total_sold": int(r.total_sold or 0)}
            for r in top_today
        ],
    }
