# Overview: Flask API routes for settings operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..services import settings_service
from ..services.settings_service import SettingsNotFoundError, SettingsValidationError
from ..decorators import require_auth, require_role
from ..errors import internal_error

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def list_settings():
    return jsonify(settings_service.get_all_settings()), 200


@settings_bp.get("/<string:key>")
@require_auth
def get_setting(key: str):
    try:
        setting = settings_service.get_setting(key)
    except SettingsNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(setting.to_dict()), 200


@settings_bp.put("/<string:key>")
@require_auth
@require_role("admin", "manager")
def update_setting(key: str):
    """Body: {"value": ...}"""
    data = request.get_json(silent=True) or {}
    try:
        setting = settings_service.set_setting(key, data.get("value"))
    except SettingsValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        return internal_error("Failed to update setting", e)

    return jsonify({"message": "Setting updated successfully", "setting": setting.to_dict()}), 200


@settings_bp.post("/bulk-update")
@require_auth
@require_role("admin", "manager")
def bulk_update():
    """
    Body: {"settings": {key: value, ...}}

    All entries are validated first; nothing is written if any is invalid.
    """
    data = request.get_json(silent=True) or {}
    try:
        keys = settings_service.bulk_update(data.get("settings"))
    except SettingsValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        return internal_error("Failed to update settings", e)

    return jsonify({"message": "Settings updated successfully", "updated": keys}), 200


@settings_bp.post("/reset")
@require_auth
@require_role("admin")
def reset():
    try:
        values = settings_service.reset_to_defaults()
    except Exception as e:
        return internal_error("Failed to reset settings", e)
    return jsonify({"message": "Settings reset to defaults", "settings": values}), 200
