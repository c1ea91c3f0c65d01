from __future__ import annotations

import json

from ..extensions import db
from retailpos.time_utils import to_utc_z


class SyncOperation(db.Model):
    """
    Operation recorded by a mobile device while offline.

    data holds the client payload as JSON text.
    """
    __tablename__ = "sync_queue"
    __table_args__ = (
        db.CheckConstraint("status IN ('pending', 'synced', 'failed')", name="ck_sync_status"),
        db.Index("ix_sync_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    operation = db.Column(db.String(32), nullable=False)
    entity_type = db.Column(db.String(32), nullable=False)
    entity_id = db.Column(db.String(64), nullable=True)
    data = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    synced_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "operation": self.operation,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "data": json.loads(self.data),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "synced_at": to_utc_z(self.synced_at) if self.synced_at else None,
        }
