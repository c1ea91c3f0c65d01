"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Cashier role denied back-office operations (403)
- Manager and admin can perform privileged operations
- Health and version endpoints are public
"""

import pytest


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/auth/users"),
            ("POST", "/api/auth/register"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/products/barcode/123"),
            ("POST", "/api/sales"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales/1/refund"),
            ("GET", "/api/inventory/overview"),
            ("POST", "/api/inventory/restock"),
            ("POST", "/api/inventory/adjust"),
            ("GET", "/api/analytics/dashboard"),
            ("GET", "/api/analytics/export"),
            ("GET", "/api/settings"),
            ("PUT", "/api/settings/tax_rate"),
            ("POST", "/api/sync/queue"),
            ("GET", "/api/sync/stats"),
            ("GET", "/exports/anything.csv"),
        ],
    )
    def test_requires_auth(self, client, seed, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"


# =============================================================================
# CASHIER DENIED BACK-OFFICE OPERATIONS (403)
# =============================================================================


class TestCashierDenied:
    """Cashier role can sell but not manage."""

    def test_cannot_list_users(self, client, cashier_headers):
        resp = client.get("/api/auth/users", headers=cashier_headers)
        assert resp.status_code == 403

    def test_cannot_register_user(self, client, cashier_headers):
        resp = client.post(
            "/api/auth/register",
            json={"username": "evil", "password": "evil12345", "role": "admin"},
            headers=cashier_headers,
        )
        assert resp.status_code == 403

    def test_cannot_adjust_inventory(self, client, cashier_headers, product):
        resp = client.post(
            "/api/inventory/adjust",
            json={"product_id": product.id, "new_quantity": 1000},
            headers=cashier_headers,
        )
        assert resp.status_code == 403

    def test_cannot_change_settings(self, client, cashier_headers):
        resp = client.put("/api/settings/tax_rate", json={"value": "0"}, headers=cashier_headers)
        assert resp.status_code == 403

    def test_cannot_export(self, client, cashier_headers):
        resp = client.get("/api/analytics/export?type=sales", headers=cashier_headers)
        assert resp.status_code == 403

    def test_cannot_clear_sync_queue(self, client, cashier_headers):
        resp = client.delete("/api/sync/clear-synced", headers=cashier_headers)
        assert resp.status_code == 403

    def test_can_read_analytics(self, client, cashier_headers):
        resp = client.get("/api/analytics/dashboard", headers=cashier_headers)
        assert resp.status_code == 200


# =============================================================================
# PRIVILEGED ROLES (200)
# =============================================================================


class TestPrivilegedAccess:
    def test_manager_can_list_users(self, client, manager_headers):
        assert client.get("/api/auth/users", headers=manager_headers).status_code == 200

    def test_manager_can_update_settings(self, client, manager_headers):
        resp = client.put("/api/settings/currency", json={"value": "EUR"}, headers=manager_headers)
        assert resp.status_code == 200

    def test_manager_cannot_reset_settings(self, client, manager_headers):
        assert client.post("/api/settings/reset", headers=manager_headers).status_code == 403

    def test_admin_can_reset_settings(self, client, admin_headers):
        assert client.post("/api/settings/reset", headers=admin_headers).status_code == 200


# =============================================================================
# PUBLIC ENDPOINTS (NO AUTH REQUIRED)
# =============================================================================


class TestPublicEndpoints:
    """System health and version endpoints are public."""

    def test_health(self, client, seed):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["details"]["users"] == 3

    def test_health_degraded_without_settings(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "degraded"

    def test_version(self, client):
        resp = client.get("/api/version")
        assert resp.status_code == 200
        assert resp.get_json()["api_version"] == "1.0.0"

    def test_unknown_route_is_json(self, client):
        resp = client.get("/api/nowhere")
        assert resp.status_code == 404
        assert "error" in resp.get_json()

    def test_cors_headers(self, client):
        resp = client.get("/api/version", headers={"Origin": "http://localhost:8081"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:8081"
