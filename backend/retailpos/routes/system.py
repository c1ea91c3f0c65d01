# backend/retailpos/routes/system.py
"""
System health and version endpoints, plus the generated-file downloads
(receipts and CSV exports).
"""

import time
from flask import Blueprint, current_app, send_from_directory
from ..extensions import db
from ..models import User, Product, Setting
from ..services.settings_service import DEFAULT_SETTINGS
from ..decorators import require_auth, require_role
from retailpos.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        product_count = db.session.query(Product).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "users": user_count,
                "products": product_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_settings_health() -> dict:
    """
    Settings missing from the table fall back to defaults, so a gap is
    reported as degraded rather than unhealthy.
    """
    start_time = time.time()
    try:
        present = {key for (key,) in db.session.query(Setting.key).all()}
        missing = sorted(set(DEFAULT_SETTINGS) - present)

        elapsed_ms = (time.time() - start_time) * 1000

        if missing:
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": f"Missing settings (defaults in use): {', '.join(missing)}",
            }

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"settings": len(present)},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Settings health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Settings error"
        }


@system_bp.get("/api/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: All systems healthy (or degraded)
    - 503: One or more systems unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    settings_health = check_settings_health()

    all_checks = [database_health, settings_health]
    unhealthy_count = sum(1 for check in all_checks if check["status"] == "unhealthy")
    degraded_count = sum(1 for check in all_checks if check["status"] == "degraded")

    if unhealthy_count > 0:
        overall_status = "unhealthy"
        http_status = 503
    elif degraded_count > 0:
        overall_status = "degraded"
        http_status = 200  # Degraded is still operational
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "settings": settings_health,
        }
    }

    return response, http_status


@system_bp.get("/api/version")
def version():
    """Non-sensitive deployment info."""
    import sys

    return {
        "api_version": "1.0.0",
        "environment": current_app.config.get("POS_ENV", "development"),
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }


@system_bp.get("/receipts/<path:filename>")
def receipt_file(filename: str):
    """Receipt files are named by their unguessable transaction UUID."""
    return send_from_directory(current_app.config["RECEIPTS_DIR"], filename)


@system_bp.get("/exports/<path:filename>")
@require_auth
@require_role("admin", "manager")
def export_file(filename: str):
    return send_from_directory(current_app.config["EXPORTS_DIR"], filename, as_attachment=True)
