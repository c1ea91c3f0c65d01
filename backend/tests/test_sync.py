"""
Offline sync queue tests.
"""

from datetime import timedelta

import pytest

from retailpos.extensions import db
from retailpos.models import SyncOperation
from retailpos.services import sync_service
from retailpos.services.sync_service import SyncError, SyncNotFoundError
from retailpos.time_utils import utcnow


def _queue(n=1):
    return [
        sync_service.queue_operation("create", "sale", {"offline_id": i, "total": 1.5})
        for i in range(n)
    ]


class TestSyncService:
    def test_queue_and_pending_order(self, seed):
        first, second = _queue(2)
        pending = sync_service.list_pending()
        assert [op.id for op in pending] == [first.id, second.id]
        assert pending[0].to_dict()["data"] == {"offline_id": 0, "total": 1.5}

    def test_queue_requires_fields(self, seed):
        with pytest.raises(SyncError):
            sync_service.queue_operation("", "sale", {})
        with pytest.raises(SyncError):
            sync_service.queue_operation("create", "sale", None)

    def test_mark_synced_and_failed(self, seed):
        ok, bad = _queue(2)
        sync_service.mark_synced(ok.id)
        sync_service.mark_failed(bad.id)

        assert sync_service.list_pending() == []
        stats = sync_service.get_stats()
        assert stats["synced"] == 1
        assert stats["failed"] == 1
        assert stats["pending"] == 0
        assert stats["last_sync"] is not None

    def test_mark_missing(self, seed):
        with pytest.raises(SyncNotFoundError):
            sync_service.mark_synced(999999)

    def test_bulk_sync_continues_past_bad_entries(self, seed):
        a, b = _queue(2)
        result = sync_service.bulk_sync([{"id": a.id}, {"id": 999999}, "x", b.id])

        assert result["success"] == 2
        assert result["failed"] == 2
        assert [r["status"] for r in result["results"]] == ["synced", "failed", "failed", "synced"]
        assert sync_service.get_stats()["synced"] == 2

    def test_bulk_sync_requires_list(self, seed):
        with pytest.raises(SyncError):
            sync_service.bulk_sync({"id": 1})

    def test_clear_synced_respects_age(self, seed):
        old, recent, pending = _queue(3)
        sync_service.mark_synced(old.id)
        sync_service.mark_synced(recent.id)
        db.session.query(SyncOperation).filter_by(id=old.id).update(
            {"synced_at": utcnow() - timedelta(days=10)}, synchronize_session=False
        )
        db.session.commit()

        assert sync_service.clear_synced(7) == 1
        remaining = {op.id for op in db.session.query(SyncOperation).all()}
        assert remaining == {recent.id, pending.id}


class TestSyncApi:
    def test_queue_and_stats(self, client, cashier_headers):
        resp = client.post(
            "/api/sync/queue",
            json={"operation": "create", "entity_type": "sale", "entity_id": 42, "data": {"items": []}},
            headers=cashier_headers,
        )
        assert resp.status_code == 201
        queue_id = resp.get_json()["queue_id"]

        pending = client.get("/api/sync/pending", headers=cashier_headers).get_json()
        assert pending[0]["entity_id"] == "42"

        assert client.put(f"/api/sync/{queue_id}/synced", headers=cashier_headers).status_code == 200
        stats = client.get("/api/sync/stats", headers=cashier_headers).get_json()
        assert stats["synced"] == 1

    def test_queue_missing_data(self, client, cashier_headers):
        resp = client.post("/api/sync/queue", json={"operation": "create"}, headers=cashier_headers)
        assert resp.status_code == 400

    def test_mark_missing(self, client, cashier_headers):
        assert client.put("/api/sync/999999/failed", headers=cashier_headers).status_code == 404

    def test_bulk_sync(self, client, cashier_headers):
        (op,) = _queue(1)
        resp = client.post(
            "/api/sync/bulk-sync",
            json={"operations": [{"id": op.id}]},
            headers=cashier_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["success"] == 1

    def test_admin_clears_synced(self, client, admin_headers):
        resp = client.delete("/api/sync/clear-synced?older_than_days=0", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["deleted"] == 0
