# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/retailpos/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require authentication.
- Read operations: any role
- Create/update: admin, manager
- Delete (soft): admin
"""
from flask import Blueprint, request

from ..services import products_service
from ..services.products_service import ProductNotFoundError
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, require_role
from ..errors import internal_error

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "barcode", "name", "description", "price", "cost", "category",
        "stock_quantity", "min_stock_level", "image_url", "is_active",
    },
    required_on_create={"barcode", "name", "price"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _bool_arg(name: str):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in ("1", "true", "yes")


@products_bp.get("")
@require_auth
def list_products():
    """
    List products with optional filters and pagination.

    Query params:
    - active: true/false (optional)
    - category: exact match (optional)
    - search: matches name, barcode or description (optional)
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    return products_service.list_products(
        active=_bool_arg("active"),
        category=request.args.get("category"),
        search=request.args.get("search"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.get("/barcode/<string:barcode>")
@require_auth
def get_product_by_barcode(barcode: str):
    """Scanner lookup; only active products resolve."""
    try:
        return products_service.get_product_by_barcode(barcode).to_dict()
    except ProductNotFoundError as e:
        return {"error": str(e)}, 404


@products_bp.get("/meta/categories")
@require_auth
def list_categories():
    return {"categories": products_service.list_categories()}


@products_bp.get("/<int:product_id>")
@require_auth
def get_product(product_id: int):
    try:
        return products_service.get_product(product_id).to_dict()
    except ProductNotFoundError as e:
        return {"error": str(e)}, 404


@products_bp.post("")
@require_auth
@require_role("admin", "manager")
def create_product_route():
    """
    Create a new product. stock_quantity sets the opening stock.

    Requires: admin or manager role
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)  # Handles price validation including max check
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = products_service.create_product(patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception as e:
        return internal_error("Failed to create product", e)

    return {"message": "Product created successfully", "product": created}, 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_role("admin", "manager")
def update_product_route(product_id: int):
    """
    Update catalog fields. Stock changes go through /api/inventory.

    Requires: admin or manager role
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = products_service.update_product(product_id=product_id, patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ProductNotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception as e:
        return internal_error("Failed to update product", e)

    return {"message": "Product updated successfully", "product": updated}, 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role("admin")
def delete_product_route(product_id: int):
    """
    Deactivate a product. Sale history keeps referencing it.

    Requires: admin role
    """
    deleted = products_service.delete_product(product_id=product_id)
    if not deleted:
        return {"error": "Product not found"}, 404

    return {"message": "Product deleted successfully"}, 200
