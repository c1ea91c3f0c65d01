# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/retailpos/routes/sales.py
"""Sales API routes with role enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service, receipt_service
from ..services.sales_service import (
    SaleError,
    SaleNotFoundError,
    InsufficientStockError,
    AlreadyRefundedError,
)
from ..services.products_service import ProductNotFoundError
from ..services.receipt_service import ReceiptError
from ..models.sales import SALE_STATUSES
from ..validation import ValidationError, parse_datetime_param
from ..decorators import require_auth, require_role
from ..errors import internal_error


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Commit a sale: items, totals, stock decrement and ledger in one transaction.

    Body: {"items": [{"product_id", "quantity"}], "payment_method", "discount_amount", "notes"}
    Available to: admin, manager, cashier
    """
    try:
        data = request.get_json(silent=True) or {}

        sale = sales_service.create_sale(
            user_id=g.current_user.id,
            items=data.get("items"),
            payment_method=data.get("payment_method"),
            discount_amount=data.get("discount_amount", 0),
            notes=data.get("notes"),
        )

        current_app.logger.info(
            "Sale %s committed by %s: total=%s",
            sale.transaction_id,
            g.current_user.username,
            sale.total,
        )
        return jsonify({
            "message": "Sale completed successfully",
            "sale_id": sale.id,
            "transaction_id": sale.transaction_id,
            "sale": sale.to_dict(include_items=True),
        }), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ProductNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except InsufficientStockError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception as e:
        return internal_error("Failed to create sale", e)


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    List sales, newest first.

    Query params: start_date, end_date, status, limit (max 500, default 100), offset
    """
    try:
        start = parse_datetime_param(request.args.get("start_date"), "start_date")
        end = parse_datetime_param(request.args.get("end_date"), "end_date", end=True)
        status = request.args.get("status")
        if status and status not in SALE_STATUSES:
            raise ValidationError("Invalid status")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    sales = sales_service.list_sales(
        start=start,
        end=end,
        status=status,
        limit=request.args.get("limit", 100, type=int),
        offset=request.args.get("offset", 0, type=int),
    )
    return jsonify([s.to_dict() for s in sales]), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    """Get sale with items."""
    try:
        sale = sales_service.get_sale(sale_id)
    except SaleNotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify(sale.to_dict(include_items=True)), 200


@sales_bp.get("/transaction/<string:transaction_id>")
@require_auth
def get_sale_by_transaction_route(transaction_id: str):
    """Get sale with items by its client-facing transaction id."""
    try:
        sale = sales_service.get_sale_by_transaction_id(transaction_id)
    except SaleNotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify(sale.to_dict(include_items=True)), 200


@sales_bp.get("/<int:sale_id>/receipt")
@require_auth
def receipt_route(sale_id: int):
    """
    Render the receipt file for a sale.

    Query params: format=pdf|txt (default pdf)
    """
    try:
        sale = sales_service.get_sale(sale_id)
        receipt = receipt_service.generate_receipt(sale, request.args.get("format", "pdf"))
        return jsonify({"message": "Receipt generated successfully", **receipt}), 200

    except SaleNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ReceiptError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        return internal_error("Failed to generate receipt", e)


@sales_bp.post("/<int:sale_id>/refund")
@require_auth
@require_role("admin", "manager")
def refund_sale_route(sale_id: int):
    """
    Refund a completed sale and put its items back in stock.

    Available to: admin, manager
    """
    try:
        sale = sales_service.refund_sale(sale_id, g.current_user.id)

        current_app.logger.info(
            "Sale %s refunded by %s", sale.transaction_id, g.current_user.username
        )
        return jsonify({
            "message": "Sale refunded successfully",
            "sale": sale.to_dict(include_items=True),
        }), 200

    except SaleNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except AlreadyRefundedError as e:
        return jsonify({"error": str(e)}), 400
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception as e:
        return internal_error("Failed to refund sale", e)
