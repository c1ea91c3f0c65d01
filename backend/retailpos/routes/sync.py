# Overview: Flask API routes for the offline sync queue; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..services import sync_service
from ..services.sync_service import SyncError, SyncNotFoundError
from ..decorators import require_auth, require_role
from ..errors import internal_error

sync_bp = Blueprint("sync", __name__, url_prefix="/api/sync")


@sync_bp.post("/queue")
@require_auth
def queue_operation():
    """Body: {"operation", "entity_type", "entity_id"?, "data"}"""
    data = request.get_json(silent=True) or {}
    try:
        op = sync_service.queue_operation(
            operation=data.get("operation"),
            entity_type=data.get("entity_type"),
            entity_id=data.get("entity_id"),
            data=data.get("data"),
        )
    except SyncError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        return internal_error("Failed to queue operation", e)

    return jsonify({"message": "Operation queued for sync", "queue_id": op.id}), 201


@sync_bp.get("/pending")
@require_auth
def pending():
    ops = sync_service.list_pending(limit=request.args.get("limit", 100, type=int))
    return jsonify([op.to_dict() for op in ops]), 200


@sync_bp.put("/<int:op_id>/synced")
@require_auth
def mark_synced(op_id: int):
    try:
        sync_service.mark_synced(op_id)
    except SyncNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"message": "Operation marked as synced"}), 200


@sync_bp.put("/<int:op_id>/failed")
@require_auth
def mark_failed(op_id: int):
    try:
        sync_service.mark_failed(op_id)
    except SyncNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"message": "Operation marked as failed"}), 200


@sync_bp.post("/bulk-sync")
@require_auth
def bulk_sync():
    """Body: {"operations": [{"id": int}, ...]}"""
    data = request.get_json(silent=True) or {}
    try:
        results = sync_service.bulk_sync(data.get("operations"))
    except SyncError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        return internal_error("Failed to perform bulk sync", e)

    return jsonify({"message": "Bulk sync completed", **results}), 200


@sync_bp.delete("/clear-synced")
@require_auth
@require_role("admin")
def clear_synced():
    """Query params: older_than_days (default 7)"""
    days = request.args.get("older_than_days", 7, type=int)
    try:
        deleted = sync_service.clear_synced(days if days is not None else 7)
    except SyncError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"message": "Synced operations cleared", "deleted": deleted}), 200


@sync_bp.get("/stats")
@require_auth
def stats():
    return jsonify(sync_service.get_stats()), 200
