# Overview: CSV exports of sales, catalog and inventory ledger into EXPORTS_DIR.

from __future__ import annotations

import csv
import os
from datetime import date

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Sale, Product, InventoryTransaction
from ..money import to_number
from retailpos.time_utils import utcnow, to_utc_z

EXPORT_TYPES = ("sales", "products", "inventory")

SALES_FIELDS = [
    "transaction_id", "created_at", "subtotal", "tax_amount", "discount_amount",
    "total", "payment_method", "status", "username",
]
PRODUCT_FIELDS = [
    "id", "barcode", "name", "category", "price", "cost", "stock_quantity", "min_stock_level",
]
INVENTORY_FIELDS = [
    "created_at", "barcode", "name", "transaction_type", "quantity_change",
    "quantity_before", "quantity_after", "username", "notes",
]


class ExportError(Exception):
    pass


def _in_range(column, start: date | None, end: date | None):
    conditions = []
    if start is not None:
        conditions.append(func.date(column) >= start.isoformat())
    if end is not None:
        conditions.append(func.date(column) <= end.isoformat())
    return conditions


def _sales_rows(start, end) -> list[dict]:
    sales = (
        db.session.query(Sale)
        .filter(*_in_range(Sale.created_at, start, end))
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .all()
    )
    return [
        {
            "transaction_id": s.transaction_id,
            "created_at": to_utc_z(s.created_at),
            "subtotal": to_number(s.subtotal),
            "tax_amount": to_number(s.tax_amount),
            "discount_amount": to_number(s.discount_amount),
            "total": to_number(s.total),
            "payment_method": s.payment_method or "",
            "status": s.status,
            "username": s.user.username if s.user else "",
        }
        for s in sales
    ]


def _product_rows() -> list[dict]:
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.id.asc())
        .all()
    )
    return [
        {
            "id": p.id,
            "barcode": p.barcode,
            "name": p.name,
            "category": p.category or "",
            "price": to_number(p.price),
            "cost": to_number(p.cost) if p.cost is not None else "",
            "stock_quantity": p.stock_quantity,
            "min_stock_level": p.min_stock_level,
        }
        for p in products
    ]


def _inventory_rows(start, end) -> list[dict]:
    txs = (
        db.session.query(InventoryTransaction)
        .filter(*_in_range(InventoryTransaction.created_at, start, end))
        .order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc())
        .all()
    )
    rows = []
    for tx in txs:
        data = tx.to_dict()
        rows.append({
            "created_at": data["created_at"],
            "barcode": data["barcode"] or "",
            "name": data["product_name"] or "",
            "transaction_type": tx.transaction_type,
            "quantity_change": tx.quantity_change,
            "quantity_before": tx.quantity_before,
            "quantity_after": tx.quantity_after,
            "username": data["username"] or "",
            "notes": tx.notes or "",
        })
    return rows


def export_csv(export_type: str, start: date | None = None, end: date | None = None) -> dict:
    """
    Write <type>_export_<timestamp>.csv into EXPORTS_DIR.

    Returns filename, url (served under /exports/) and record count.
    """
    if not export_type:
        raise ExportError("Export type is required")
    if export_type not in EXPORT_TYPES:
        raise ExportError("Invalid export type")

    if export_type == "sales":
        rows, fields = _sales_rows(start, end), SALES_FIELDS
    elif export_type == "products":
        rows, fields = _product_rows(), PRODUCT_FIELDS
    else:
        rows, fields = _inventory_rows(start, end), INVENTORY_FIELDS

    exports_dir = current_app.config["EXPORTS_DIR"]
    os.makedirs(exports_dir, exist_ok=True)

    filename = f"{export_type}_export_{utcnow().strftime('%Y%m%dT%H%M%S%f')}.csv"
    path = os.path.join(exports_dir, filename)

    with open(path, "w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=fields)
        writer.writeheader()
        writer.writerows(rows)

    return {
        "filename": filename,
        "path": path,
        "url": f"/exports/{filename}",
        "records": len(rows),
    }
