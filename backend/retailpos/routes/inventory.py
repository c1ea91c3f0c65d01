# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

# backend/retailpos/routes/inventory.py
"""
Inventory routes: stock levels, alerts, restock/adjust and the ledger.

SECURITY: All routes require authentication.
- Restock and adjust require admin or manager.
"""
from flask import Blueprint, request, g

from ..services import inventory_service
from ..services.inventory_service import InventoryError
from ..services.products_service import ProductNotFoundError
from ..models.inventory import TRANSACTION_TYPES
from ..validation import (
    ValidationError,
    parse_datetime_param,
    require_positive_int,
    require_non_negative_int,
)
from ..decorators import require_auth, require_role
from ..errors import internal_error

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/overview")
@require_auth
def overview():
    return inventory_service.get_overview()


@inventory_bp.get("/low-stock")
@require_auth
def low_stock():
    return {"items": [p.to_dict() for p in inventory_service.list_low_stock()]}


@inventory_bp.get("/out-of-stock")
@require_auth
def out_of_stock():
    return {"items": [p.to_dict() for p in inventory_service.list_out_of_stock()]}


@inventory_bp.get("/alerts")
@require_auth
def alerts():
    items = inventory_service.get_alerts()
    return {"alerts": items, "count": len(items)}


@inventory_bp.post("/restock")
@require_auth
@require_role("admin", "manager")
def restock_route():
    """
    Receive stock for a product.

    Body: {"product_id": int, "quantity": int > 0, "notes": str?}
    """
    payload = request.get_json(silent=True) or {}

    try:
        product_id = require_positive_int(payload.get("product_id"), "product_id")
        quantity = require_positive_int(payload.get("quantity"), "quantity")
        tx = inventory_service.restock(
            product_id=product_id,
            quantity=quantity,
            user_id=g.current_user.id,
            notes=payload.get("notes"),
        )
    except (ValidationError, InventoryError) as e:
        return {"error": str(e)}, 400
    except ProductNotFoundError as e:
        return {"error": str(e)}, 404
    except Exception as e:
        return internal_error("Failed to restock product", e)

    return {
        "message": "Product restocked successfully",
        "product_id": tx.product_id,
        "quantity_before": tx.quantity_before,
        "quantity_after": tx.quantity_after,
        "quantity_added": tx.quantity_change,
        "transaction": tx.to_dict(),
    }, 200


@inventory_bp.post("/adjust")
@require_auth
@require_role("admin", "manager")
def adjust_route():
    """
    Set stock to a counted quantity.

    Body: {"product_id": int, "new_quantity": int >= 0, "notes": str?}
    """
    payload = request.get_json(silent=True) or {}

    try:
        product_id = require_positive_int(payload.get("product_id"), "product_id")
        new_quantity = require_non_negative_int(payload.get("new_quantity"), "new_quantity")
        tx = inventory_service.adjust(
            product_id=product_id,
            new_quantity=new_quantity,
            user_id=g.current_user.id,
            notes=payload.get("notes"),
        )
    except (ValidationError, InventoryError) as e:
        return {"error": str(e)}, 400
    except ProductNotFoundError as e:
        return {"error": str(e)}, 404
    except Exception as e:
        return internal_error("Failed to adjust inventory", e)

    return {
        "message": "Inventory adjusted successfully",
        "product_id": tx.product_id,
        "quantity_before": tx.quantity_before,
        "quantity_after": tx.quantity_after,
        "quantity_change": tx.quantity_change,
        "transaction": tx.to_dict(),
    }, 200


@inventory_bp.get("/transactions")
@require_auth
def transactions():
    """
    Ledger rows, newest first.

    Query params: product_id, transaction_type, start_date, end_date, limit, offset
    """
    try:
        transaction_type = request.args.get("transaction_type")
        if transaction_type and transaction_type not in TRANSACTION_TYPES:
            raise ValidationError("Invalid transaction_type")
        start = parse_datetime_param(request.args.get("start_date"), "start_date")
        end = parse_datetime_param(request.args.get("end_date"), "end_date", end=True)
    except ValidationError as e:
        return {"error": str(e)}, 400

    rows = inventory_service.list_transactions(
        product_id=request.args.get("product_id", type=int),
        transaction_type=transaction_type,
        start=start,
        end=end,
        limit=request.args.get("limit", 100, type=int),
        offset=request.args.get("offset", 0, type=int),
    )
    return {"items": [r.to_dict() for r in rows], "count": len(rows)}


@inventory_bp.get("/fast-moving")
@require_auth
def fast_moving():
    days = request.args.get("days", 30, type=int)
    limit = request.args.get("limit", 10, type=int)
    if days is None or days <= 0 or limit is None or limit <= 0:
        return {"error": "days and limit must be positive integers"}, 400
    return {"items": inventory_service.list_fast_moving(days=days, limit=limit)}


@inventory_bp.get("/reconcile/<int:product_id>")
@require_auth
def reconcile(product_id: int):
    """Check a product's stock against its ledger."""
    try:
        return inventory_service.reconcile_product(product_id)
    except ProductNotFoundError as e:
        return {"error": str(e)}, 404
