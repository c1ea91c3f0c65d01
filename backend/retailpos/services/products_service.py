# Overview: Service-layer operations for products; encapsulates business logic and database work.

# backend/retailpos/services/products_service.py
"""
Product catalog service.

Stock is NOT writable through this module after creation: the initial
stock_quantity is set on create, every later change goes through the
sale, refund, restock or adjustment services so that the inventory
ledger stays reconcilable.
"""
from __future__ import annotations

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product
from ..validation import ConflictError, ValidationError

PRODUCT_MUTABLE_FIELDS = {
    "barcode",
    "name",
    "description",
    "price",
    "cost",
    "category",
    "min_stock_level",
    "image_url",
    "is_active",
}


class ProductNotFoundError(Exception):
    """Raised when a product id or barcode does not resolve."""
    pass


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def list_products(
    active: bool | None = None,
    category: str | None = None,
    search: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Product listing with optional filters and pagination.

    Args:
        active: Filter on is_active when given
        category: Exact category match
        search: Substring match on name, barcode or description
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default 20, max 100)

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    base_query = db.session.query(Product)

    if active is not None:
        base_query = base_query.filter(Product.is_active.is_(active))

    if category:
        base_query = base_query.filter(Product.category == category)

    if search:
        term = f"%{search}%"
        base_query = base_query.filter(
            or_(
                Product.name.ilike(term),
                Product.barcode.ilike(term),
                Product.description.ilike(term),
            )
        )

    base_query = base_query.order_by(Product.name.asc(), Product.id.asc())

    # If no pagination requested, return all items
    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    # Pagination logic
    per_page = min(per_page or 20, 100)  # Default 20, max 100
    page = max(page, 1)  # Ensure page >= 1

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductNotFoundError("Product not found")
    return product


def get_product_by_barcode(barcode: str) -> Product:
    """Scanner lookup. Only active products are sellable, so only those are returned."""
    product = (
        db.session.query(Product)
        .filter(Product.barcode == barcode, Product.is_active.is_(True))
        .first()
    )
    if product is None:
        raise ProductNotFoundError("Product not found")
    return product


def _ensure_barcode_free(barcode: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Product).filter(Product.barcode == barcode)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError("Product with this barcode already exists")


def create_product(*, patch: dict) -> dict:
    """
    Create product using a validated patch dict.

    stock_quantity in the patch is the opening balance. It is the ledger's
    starting point, so no InventoryTransaction is written for it.

    Raises:
        ConflictError: If the barcode already exists
    """
    barcode = patch.get("barcode")
    if not barcode:
        raise ValidationError("barcode is required")

    _ensure_barcode_free(barcode)

    p = Product(stock_quantity=patch.get("stock_quantity") or 0)
    apply_product_patch(p, patch)
    if p.min_stock_level is None:
        p.min_stock_level = 10

    db.session.add(p)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Product with this barcode already exists")
    return p.to_dict()


def update_product(*, product_id: int, patch: dict) -> dict:
    """
    Update catalog fields of a product.

    Raises:
        ProductNotFoundError: unknown id
        ValidationError: empty patch or an attempt to write stock_quantity
        ConflictError: new barcode already taken
    """
    if "stock_quantity" in patch:
        raise ValidationError(
            "stock_quantity cannot be changed here; use inventory restock or adjust"
        )
    if not patch:
        raise ValidationError("No fields to update")

    p = get_product(product_id)

    if "barcode" in patch and patch["barcode"] != p.barcode:
        _ensure_barcode_free(patch["barcode"], exclude_id=p.id)

    apply_product_patch(p, patch)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Product with this barcode already exists")
    return p.to_dict()


def delete_product(*, product_id: int) -> bool:
    """
    Soft-delete a product.

    Returns:
        True if deleted, False if not found
    """
    p = db.session.get(Product, product_id)
    if not p:
        return False

    # Soft-delete only: sale items and ledger rows keep pointing at it.
    if p.is_active:
        p.is_active = False

    db.session.commit()
    return True


def list_categories() -> list[str]:
    rows = (
        db.session.query(Product.category)
        .filter(Product.category.isnot(None), Product.is_active.is_(True))
        .distinct()
        .order_by(Product.category.asc())
        .all()
    )
    return [row[0] for row in rows if row[0]]
