# Overview: Flask API routes for analytics and export; parses input and returns JSON responses.

# backend/retailpos/routes/analytics.py
"""
Analytics API

All figures are computed over completed sales only; refunded sales drop
out of revenue the moment they are refunded.
"""

from flask import Blueprint, request, jsonify

from ..services import reporting_service, export_service
from ..services.reporting_service import ReportError
from ..services.export_service import ExportError
from ..validation import ValidationError, parse_date_param
from ..decorators import require_auth, require_role
from ..errors import internal_error

analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


def _range_args():
    start = parse_date_param(request.args.get("start_date"), "start_date")
    end = parse_date_param(request.args.get("end_date"), "end_date")
    return start, end


@analytics_bp.get("/dashboard")
@require_auth
def dashboard():
    return jsonify(reporting_service.dashboard()), 200


@analytics_bp.get("/daily-summary")
@require_auth
def daily_summary():
    """Query params: date (YYYY-MM-DD, default today UTC)"""
    try:
        day = parse_date_param(request.args.get("date"), "date")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(reporting_service.daily_summary(day)), 200


@analytics_bp.get("/sales-by-date")
@require_auth
def sales_by_date():
    """Query params: start_date, end_date (both required, inclusive)"""
    try:
        start, end = _range_args()
        data = reporting_service.sales_by_date(start, end)
    except (ValidationError, ReportError) as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(data), 200


@analytics_bp.get("/sales-by-category")
@require_auth
def sales_by_category():
    try:
        start, end = _range_args()
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(reporting_service.sales_by_category(start, end)), 200


@analytics_bp.get("/top-products")
@require_auth
def top_products():
    try:
        start, end = _range_args()
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    limit = request.args.get("limit", 10, type=int) or 10
    return jsonify(reporting_service.top_products(start, end, limit=limit)), 200


@analytics_bp.get("/hourly-pattern")
@require_auth
def hourly_pattern():
    try:
        day = parse_date_param(request.args.get("date"), "date")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(reporting_service.hourly_pattern(day)), 200


@analytics_bp.get("/payment-methods")
@require_auth
def payment_methods():
    try:
        start, end = _range_args()
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(reporting_service.payment_methods(start, end)), 200


@analytics_bp.get("/export")
@require_auth
@require_role("admin", "manager")
def export():
    """
    Write a CSV export and return where to fetch it.

    Query params: type=sales|products|inventory, start_date, end_date
    """
    try:
        start, end = _range_args()
        result = export_service.export_csv(request.args.get("type"), start, end)
    except (ValidationError, ExportError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        return internal_error("Failed to export data", e)

    return jsonify({
        "message": "Export completed successfully",
        "filename": result["filename"],
        "url": result["url"],
        "records": result["records"],
    }), 200
