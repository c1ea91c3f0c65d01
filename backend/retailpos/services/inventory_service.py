# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/retailpos/services/inventory_service.py

from datetime import datetime

from sqlalchemy import func, update
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Product, InventoryTransaction, Sale, SaleItem
from ..money import ZERO, to_number
from retailpos.time_utils import utcnow, days_ago
from .concurrency import run_with_retry
from .products_service import ProductNotFoundError
from .settings_service import get_low_stock_threshold
"""
Inventory invariants (authoritative)

Stock model:
- Product.stock_quantity is the running balance; it never goes negative
  (CHECK constraint plus conditional UPDATE).
- Every change to it appends exactly one InventoryTransaction in the same
  DB transaction: sale (-q), return (+q), restock (+q), adjustment (new - before).
- The opening balance is the stock a product was created with.

Reconciliation:
- opening + SUM(quantity_change) == stock_quantity
- every row satisfies quantity_after == quantity_before + quantity_change
- consecutive rows chain: row[n].quantity_before == row[n-1].quantity_after

Time:
- All internal datetimes are UTC-naive; created_at is set server side.
"""

MAX_TRANSACTIONS_LIMIT = 500


class InventoryError(Exception):
    """Raised for inventory rule violations."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def change_stock(product: Product, delta: int) -> tuple[int, int] | None:
    """
    Atomically add delta to product.stock_quantity.

    Decrements are conditional on enough stock being present at UPDATE time,
    so two concurrent sales cannot both take the last unit. Returns
    (quantity_before, quantity_after), or None if the decrement would
    have gone negative.
    """
    stmt = update(Product).where(Product.id == product.id)
    if delta < 0:
        stmt = stmt.where(Product.stock_quantity >= -delta)

    result = db.session.execute(
        stmt.values(
            stock_quantity=Product.stock_quantity + delta,
            version_id=Product.version_id + 1,
        ).execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return None

    db.session.refresh(product)
    after = product.stock_quantity
    return after - delta, after


def set_stock(product: Product, expected_before: int, new_quantity: int) -> None:
    """
    Compare-and-set stock to an absolute value.

    Raises StaleDataError when stock moved since it was read, which makes
    run_with_retry re-read and try again.
    """
    result = db.session.execute(
        update(Product)
        .where(Product.id == product.id, Product.stock_quantity == expected_before)
        .values(stock_quantity=new_quantity, version_id=Product.version_id + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise StaleDataError(f"stock for product {product.id} changed concurrently")
    db.session.refresh(product)


def record_transaction(
    *,
    product_id: int,
    transaction_type: str,
    quantity_before: int,
    quantity_after: int,
    user_id: int | None = None,
    reference_id: int | None = None,
    notes: str | None = None,
    created_at: datetime | None = None,
) -> InventoryTransaction:
    """Append one ledger row. Caller owns the commit."""
    tx = InventoryTransaction(
        product_id=product_id,
        transaction_type=transaction_type,
        quantity_change=quantity_after - quantity_before,
        quantity_before=quantity_before,
        quantity_after=quantity_after,
        reference_id=reference_id,
        user_id=user_id,
        notes=notes or None,
        created_at=created_at or utcnow(),
    )
    db.session.add(tx)
    return tx


def _get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductNotFoundError("Product not found")
    return product


def restock(product_id: int, quantity: int, user_id: int | None = None, notes: str | None = None) -> InventoryTransaction:
    """Receive stock: stock += quantity plus one 'restock' ledger row."""
    if quantity <= 0:
        raise InventoryError("quantity must be positive")

    def _op():
        product = _get_product(product_id)
        before, after = change_stock(product, quantity)
        tx = record_transaction(
            product_id=product.id,
            transaction_type="restock",
            quantity_before=before,
            quantity_after=after,
            user_id=user_id,
            notes=notes,
        )
        db.session.commit()
        return tx

    return run_with_retry(_op)


def adjust(product_id: int, new_quantity: int, user_id: int | None = None, notes: str | None = None) -> InventoryTransaction:
    """
    Physical count correction: stock set to new_quantity.

    The ledger row carries the signed difference so reconciliation still
    holds. A zero difference is recorded too (confirms the count).
    """
    if new_quantity < 0:
        raise InventoryError("new_quantity must be non-negative")

    def _op():
        product = _get_product(product_id)
        before = product.stock_quantity
        set_stock(product, before, new_quantity)
        tx = record_transaction(
            product_id=product.id,
            transaction_type="adjustment",
            quantity_before=before,
            quantity_after=new_quantity,
            user_id=user_id,
            notes=notes,
        )
        db.session.commit()
        return tx

    return run_with_retry(_op)


def list_transactions(
    product_id: int | None = None,
    transaction_type: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[InventoryTransaction]:
    """Ledger rows, newest first."""
    limit = max(1, min(limit or 100, MAX_TRANSACTIONS_LIMIT))
    offset = max(offset or 0, 0)

    q = db.session.query(InventoryTransaction)
    if product_id is not None:
        q = q.filter(InventoryTransaction.product_id == product_id)
    if transaction_type:
        q = q.filter(InventoryTransaction.transaction_type == transaction_type)
    if start is not None:
        q = q.filter(InventoryTransaction.created_at >= start)
    if end is not None:
        q = q.filter(InventoryTransaction.created_at <= end)

    return (
        q.order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def _active_products():
    return db.session.query(Product).filter(Product.is_active.is_(True))


def get_overview() -> dict:
    threshold = get_low_stock_threshold()
    active = _active_products()

    stock_value = (
        db.session.query(func.coalesce(func.sum(Product.stock_quantity * Product.price), 0))
        .filter(Product.is_active.is_(True))
        .scalar()
    )

    return {
        "total_products": active.count(),
        "total_stock_value": round(float(stock_value or ZERO), 2),
        "low_stock_count": active.filter(Product.stock_quantity <= threshold).count(),
        "out_of_stock_count": active.filter(Product.stock_quantity == 0).count(),
        "low_stock_threshold": threshold,
    }


def list_low_stock() -> list[Product]:
    threshold = get_low_stock_threshold()
    return (
        _active_products()
        .filter(Product.stock_quantity > 0, Product.stock_quantity <= threshold)
        .order_by(Product.stock_quantity.asc(), Product.name.asc())
        .all()
    )


def list_out_of_stock() -> list[Product]:
    return (
        _active_products()
        .filter(Product.stock_quantity == 0)
        .order_by(Product.name.asc())
        .all()
    )


def get_alerts() -> list[dict]:
    """Out-of-stock (critical) first, then low stock (warning)."""
    threshold = get_low_stock_threshold()
    alerts = []

    for product in list_out_of_stock():
        alerts.append({
            "type": "out_of_stock",
            "severity": "critical",
            "product_id": product.id,
            "product_name": product.name,
            "barcode": product.barcode,
            "current_stock": 0,
            "message": f"{product.name} is out of stock",
        })

    for product in list_low_stock():
        alerts.append({
            "type": "low_stock",
            "severity": "warning",
            "product_id": product.id,
            "product_name": product.name,
            "barcode": product.barcode,
            "current_stock": product.stock_quantity,
            "threshold": threshold,
            "message": f"{product.name} stock is low ({product.stock_quantity} remaining)",
        })

    return alerts


def list_fast_moving(days: int = 30, limit: int = 10) -> list[dict]:
    """Best sellers by units over the last `days` days, completed sales only."""
    total_sold = func.sum(SaleItem.quantity).label("total_sold")
    rows = (
        db.session.query(
            Product.id,
            Product.barcode,
            Product.name,
            Product.category,
            Product.price,
            Product.stock_quantity,
            total_sold,
            func.count(func.distinct(SaleItem.sale_id)).label("transaction_count"),
        )
        .join(SaleItem, SaleItem.product_id == Product.id)
        .join(Sale, Sale.id == SaleItem.sale_id)
        .filter(Sale.status == "completed", Sale.created_at >= days_ago(days))
        .group_by(Product.id)
        .order_by(total_sold.desc(), Product.id.asc())
        .limit(limit)
        .all()
    )

    return [
        {
            "id": r.id,
            "barcode": r.barcode,
            "name": r.name,
            "category": r.category,
            "price": to_number(r.price),
            "stock_quantity": r.stock_quantity,
            "total_sold": int(r.total_sold or 0),
            "transaction_count": int(r.transaction_count or 0),
        }
        for r in rows
    ]


def reconcile_product(product_id: int) -> dict:
    """
    Check a product's stock against its ledger.

    Returns a report dict; "ok" is False when the balance or any row
    is inconsistent.
    """
    product = _get_product(product_id)
    rows = (
        db.session.query(InventoryTransaction)
        .filter(InventoryTransaction.product_id == product.id)
        .order_by(InventoryTransaction.id.asc())
        .all()
    )

    problems = []
    if rows:
        opening = rows[0].quantity_before
    else:
        opening = product.stock_quantity

    previous_after = None
    for row in rows:
        if row.quantity_after != row.quantity_before + row.quantity_change:
            problems.append({"transaction_id": row.id, "problem": "row does not balance"})
        if previous_after is not None and row.quantity_before != previous_after:
            problems.append({"transaction_id": row.id, "problem": "quantity_before does not follow previous row"})
        previous_after = row.quantity_after

    ledger_total = sum(row.quantity_change for row in rows)
    expected = opening + ledger_total
    if expected != product.stock_quantity:
        problems.append({
            "transaction_id": None,
            "problem": f"ledger implies {expected}, product has {product.stock_quantity}",
        })

    return {
        "product_id": product.id,
        "product_name": product.name,
        "opening_quantity": opening,
        "ledger_change": ledger_total,
        "expected_quantity": expected,
        "stock_quantity": product.stock_quantity,
        "transaction_count": len(rows),
        "ok": not problems,
        "problems": problems,
    }


def verify_all() -> list[dict]:
    """Reconcile every product; returns only the failing reports."""
    failures = []
    for (product_id,) in db.session.query(Product.id).order_by(Product.id.asc()).all():
        report = reconcile_product(product_id)
        if not report["ok"]:
            failures.append(report)
    return failures
