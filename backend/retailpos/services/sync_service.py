# Overview: Service-layer operations for the offline sync queue.

from __future__ import annotations

import json
from datetime import timedelta

from sqlalchemy import func

from ..extensions import db
from ..models import SyncOperation
from retailpos.time_utils import utcnow, to_utc_z

MAX_PENDING_LIMIT = 500


class SyncError(Exception):
    pass


class SyncNotFoundError(SyncError):
    pass


def queue_operation(operation: str, entity_type: str, data, entity_id=None) -> SyncOperation:
    if not operation or not entity_type or data is None:
        raise SyncError("operation, entity_type, and data are required")

    op = SyncOperation(
        operation=str(operation),
        entity_type=str(entity_type),
        entity_id=str(entity_id) if entity_id not in (None, "") else None,
        data=json.dumps(data),
        status="pending",
        created_at=utcnow(),
    )
    db.session.add(op)
    db.session.commit()
    return op


def list_pending(limit: int = 100) -> list[SyncOperation]:
    """Oldest first, so devices replay in the order they recorded."""
    limit = max(1, min(limit or 100, MAX_PENDING_LIMIT))
    return (
        db.session.query(SyncOperation)
        .filter(SyncOperation.status == "pending")
        .order_by(SyncOperation.created_at.asc(), SyncOperation.id.asc())
        .limit(limit)
        .all()
    )


def _get(op_id: int) -> SyncOperation:
    op = db.session.get(SyncOperation, op_id)
    if op is None:
        raise SyncNotFoundError("Operation not found")
    return op


def mark_synced(op_id: int) -> SyncOperation:
    op = _get(op_id)
    op.status = "synced"
    op.synced_at = utcnow()
    db.session.commit()
    return op


def mark_failed(op_id: int) -> SyncOperation:
    op = _get(op_id)
    op.status = "failed"
    db.session.commit()
    return op


def bulk_sync(operations) -> dict:
    """
    Mark each listed operation synced. A bad entry is counted as a failure
    and does not stop the rest of the batch.
    """
    if not isinstance(operations, list):
        raise SyncError("operations array is required")

    results = {"success": 0, "failed": 0, "results": []}
    now = utcnow()

    for entry in operations:
        op_id = entry.get("id") if isinstance(entry, dict) else entry
        try:
            if isinstance(op_id, bool) or not isinstance(op_id, int):
                raise SyncError("operation id must be an integer")
            op = _get(op_id)
        except SyncError as e:
            results["failed"] += 1
            results["results"].append({"id": op_id, "status": "failed", "error": str(e)})
            continue

        op.status = "synced"
        op.synced_at = now
        results["success"] += 1
        results["results"].append({"id": op_id, "status": "synced"})

    db.session.commit()
    return results


def clear_synced(older_than_days: int = 7) -> int:
    if older_than_days < 0:
        raise SyncError("older_than_days must be non-negative")

    cutoff = utcnow() - timedelta(days=older_than_days)
    deleted = (
        db.session.query(SyncOperation)
        .filter(SyncOperation.status == "synced", SyncOperation.synced_at < cutoff)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted


def get_stats() -> dict:
    counts = dict(
        db.session.query(SyncOperation.status, func.count(SyncOperation.id))
        .group_by(SyncOperation.status)
        .all()
    )
    last_sync = (
        db.session.query(func.max(SyncOperation.synced_at))
        .filter(SyncOperation.status == "synced")
        .scalar()
    )
    return {
        "pending": counts.get("pending", 0),
        "synced": counts.get("synced", 0),
        "failed": counts.get("failed", 0),
        "last_sync": to_utc_z(last_sync) if last_sync else None,
    }
