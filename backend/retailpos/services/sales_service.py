"""
Sales Service - atomic sale commit and refund

A sale touches four tables (sales, sale_items, products,
inventory_transactions) in one DB transaction: there is never a sale
without its stock movement or a stock movement without its sale.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..extensions import db
from ..models import Sale, SaleItem, Product
from ..money import ZERO, MoneyError, to_decimal
from ..validation import ValidationError, require_positive_int
from retailpos.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .inventory_service import change_stock, record_transaction
from .products_service import ProductNotFoundError
from .settings_service import get_tax_rate

MONEY_QUANTUM = Decimal("0.0001")
MAX_LIST_LIMIT = 500


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class SaleNotFoundError(SaleError):
    pass


class InsufficientStockError(SaleError):
    pass


class AlreadyRefundedError(SaleError):
    pass


def _quantize(amount: Decimal) -> Decimal:
    return amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def compute_totals(subtotal: Decimal, discount_amount: Decimal, tax_rate: Decimal) -> dict:
    """
    tax = (subtotal - discount) * rate
    total = subtotal - discount + tax
    """
    taxable = subtotal - discount_amount
    tax_amount = _quantize(taxable * tax_rate)
    total = _quantize(taxable + tax_amount)
    return {
        "subtotal": _quantize(subtotal),
        "tax_rate": tax_rate,
        "tax_amount": tax_amount,
        "discount_amount": _quantize(discount_amount),
        "total": total,
    }


def parse_items(items) -> list[tuple[int, int]]:
    """Normalize the request's item list to (product_id, quantity) pairs."""
    if not items or not isinstance(items, list):
        raise ValidationError("Sale must contain at least one item")

    parsed = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        product_id = require_positive_int(item.get("product_id"), f"items[{index}].product_id")
        quantity = require_positive_int(item.get("quantity"), f"items[{index}].quantity")
        parsed.append((product_id, quantity))
    return parsed


def _load_products(lines: list[tuple[int, int]]) -> dict[int, Product]:
    """Active products for every line, plus the aggregated stock check."""
    requested: dict[int, int] = {}
    for product_id, quantity in lines:
        requested[product_id] = requested.get(product_id, 0) + quantity

    products = {}
    for product_id in requested:
        product = (
            db.session.query(Product)
            .filter(Product.id == product_id, Product.is_active.is_(True))
            .first()
        )
        if product is None:
            raise ProductNotFoundError(f"Product not found: {product_id}")
        products[product_id] = product

    insufficient = []
    for product_id, qty in requested.items():
        product = products[product_id]
        if product.stock_quantity < qty:
            insufficient.append({
                "product_id": product_id,
                "product_name": product.name,
                "requested_quantity": qty,
                "available": product.stock_quantity,
            })

    if insufficient:
        first = insufficient[0]
        raise InsufficientStockError(
            f"Insufficient stock for {first['product_name']}. Available: {first['available']}",
            details={"items": insufficient},
        )

    return products


def create_sale(
    *,
    user_id: int,
    items,
    payment_method: str | None = None,
    discount_amount=0,
    notes: str | None = None,
) -> Sale:
    """
    Commit a sale.

    Validates every line, computes totals with the current tax rate, then in
    one transaction writes the Sale, its SaleItems, decrements stock and
    appends one 'sale' ledger row per line.

    Raises:
        ValidationError: empty item list, bad quantity, non-numeric discount
        ProductNotFoundError: unknown or inactive product
        InsufficientStockError: requested more than on hand
    """
    lines = parse_items(items)
    try:
        discount = to_decimal(discount_amount, field="discount_amount")
    except MoneyError as e:
        raise ValidationError(str(e))

    tax_rate = get_tax_rate()

    def _op():
        products = _load_products(lines)

        subtotal = ZERO
        priced = []
        for product_id, quantity in lines:
            product = products[product_id]
            line_subtotal = product.price * quantity
            subtotal += line_subtotal
            priced.append((product, quantity, line_subtotal))

        totals = compute_totals(subtotal, discount, tax_rate)
        if subtotal - discount < 0:
            current_app.logger.warning(
                "Sale discount %s exceeds subtotal %s; taxable amount is negative",
                discount,
                subtotal,
            )

        now = utcnow()
        sale = Sale(
            transaction_id=str(uuid.uuid4()),
            user_id=user_id,
            payment_method=payment_method or None,
            notes=notes or None,
            status="completed",
            created_at=now,
            **totals,
        )
        db.session.add(sale)
        db.session.flush()  # sale.id for items and ledger references

        for product, quantity, line_subtotal in priced:
            moved = change_stock(product, -quantity)
            if moved is None:
                # Drained by a concurrent sale after the check above
                raise InsufficientStockError(
                    f"Insufficient stock for {product.name}",
                    details={"items": [{"product_id": product.id, "requested_quantity": quantity}]},
                )
            before, after = moved

            db.session.add(SaleItem(
                sale_id=sale.id,
                product_id=product.id,
                barcode=product.barcode,
                product_name=product.name,
                quantity=quantity,
                unit_price=product.price,
                subtotal=_quantize(line_subtotal),
            ))
            record_transaction(
                product_id=product.id,
                transaction_type="sale",
                quantity_before=before,
                quantity_after=after,
                user_id=user_id,
                reference_id=sale.id,
                created_at=now,
            )

        db.session.commit()
        return sale

    return run_with_retry(_op)


def refund_sale(sale_id: int, user_id: int) -> Sale:
    """
    Refund a completed sale: status -> refunded and every line's quantity
    goes back on the shelf with a 'return' ledger row.
    """
    def _op():
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not sale:
            raise SaleNotFoundError("Sale not found")

        if sale.status == "refunded":
            raise AlreadyRefundedError("Sale already refunded")

        if sale.status != "completed":
            raise SaleError(f"Cannot refund sale with status {sale.status}")

        now = utcnow()
        sale.status = "refunded"
        sale.refunded_at = now
        sale.refunded_by_user_id = user_id

        for item in sale.items:
            product = db.session.get(Product, item.product_id)
            before, after = change_stock(product, item.quantity)
            record_transaction(
                product_id=item.product_id,
                transaction_type="return",
                quantity_before=before,
                quantity_after=after,
                user_id=user_id,
                reference_id=sale.id,
                notes=f"Refund of {sale.transaction_id}",
                created_at=now,
            )

        db.session.commit()
        return sale

    return run_with_retry(_op)


def list_sales(
    start: datetime | None = None,
    end: datetime | None = None,
    status: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[Sale]:
    limit = max(1, min(limit or 100, MAX_LIST_LIMIT))
    offset = max(offset or 0, 0)

    q = db.session.query(Sale)
    if start is not None:
        q = q.filter(Sale.created_at >= start)
    if end is not None:
        q = q.filter(Sale.created_at <= end)
    if status:
        q = q.filter(Sale.status == status)

    return (
        q.order_by(Sale.created_at.desc(), Sale.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise SaleNotFoundError("Sale not found")
    return sale


def get_sale_by_transaction_id(transaction_id: str) -> Sale:
    sale = db.session.query(Sale).filter(Sale.transaction_id == transaction_id).first()
    if sale is None:
        raise SaleNotFoundError("Sale not found")
    return sale
