"""
Product catalog API tests.
"""

import pytest


NEW_PRODUCT = {
    "barcode": "5000000000001",
    "name": "Sparkling Water 1L",
    "price": 0.99,
    "category": "Beverages",
    "stock_quantity": 24,
}


class TestCreateProduct:
    def test_manager_creates_product(self, client, manager_headers):
        resp = client.post("/api/products", json=NEW_PRODUCT, headers=manager_headers)
        assert resp.status_code == 201

        product = resp.get_json()["product"]
        assert product["price"] == pytest.approx(0.99)
        assert product["stock_quantity"] == 24
        assert product["min_stock_level"] == 10
        assert product["is_active"] is True
        assert "version_id" not in product

    def test_duplicate_barcode(self, client, admin_headers, product):
        resp = client.post(
            "/api/products",
            json={**NEW_PRODUCT, "barcode": product.barcode},
            headers=admin_headers,
        )
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "Product with this barcode already exists"

    @pytest.mark.parametrize(
        "payload,message",
        [
            ({"name": "No barcode", "price": 1}, "Missing required fields: barcode"),
            ({**NEW_PRODUCT, "price": -1}, "price must be >= 0"),
            ({**NEW_PRODUCT, "price": 1.999}, "price allows at most 2 decimal places"),
            ({**NEW_PRODUCT, "price": float("inf")}, "price must be a number"),
            ({**NEW_PRODUCT, "cost": float("nan")}, "cost must be a number"),
            ({**NEW_PRODUCT, "stock_quantity": 10**30}, "stock_quantity is too large"),
            ({**NEW_PRODUCT, "stock_quantity": 2.5}, "stock_quantity must be an integer, not a decimal"),
            ({**NEW_PRODUCT, "sku": "X"}, "Field not allowed: sku"),
        ],
    )
    def test_validation(self, client, admin_headers, payload, message):
        resp = client.post("/api/products", json=payload, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == message

    def test_cashier_cannot_create(self, client, cashier_headers):
        resp = client.post("/api/products", json=NEW_PRODUCT, headers=cashier_headers)
        assert resp.status_code == 403


class TestReadProducts:
    def test_barcode_lookup(self, client, cashier_headers, product):
        resp = client.get(f"/api/products/barcode/{product.barcode}", headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.get_json()["name"] == "Coca Cola 500ml"

    def test_unknown_barcode(self, client, cashier_headers, seed):
        resp = client.get("/api/products/barcode/0000", headers=cashier_headers)
        assert resp.status_code == 404

    def test_list_search_and_category(self, client, cashier_headers, product, second_product):
        all_items = client.get("/api/products", headers=cashier_headers).get_json()
        assert all_items["count"] == 2

        snacks = client.get("/api/products?category=Snacks", headers=cashier_headers).get_json()
        assert [p["id"] for p in snacks["items"]] == [second_product.id]

        found = client.get("/api/products?search=cola", headers=cashier_headers).get_json()
        assert [p["id"] for p in found["items"]] == [product.id]

    def test_pagination(self, client, cashier_headers, product, second_product):
        data = client.get("/api/products?page=1&per_page=1", headers=cashier_headers).get_json()
        assert data["count"] == 1
        assert data["pagination"]["total"] == 2
        assert data["pagination"]["has_next"] is True

    def test_categories(self, client, cashier_headers, product, second_product):
        resp = client.get("/api/products/meta/categories", headers=cashier_headers)
        assert resp.get_json()["categories"] == ["Beverages", "Snacks"]


class TestUpdateAndDelete:
    def test_update_price(self, client, manager_headers, product):
        resp = client.put(f"/api/products/{product.id}", json={"price": 2.25}, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.get_json()["product"]["price"] == pytest.approx(2.25)

    def test_stock_cannot_be_edited_directly(self, client, manager_headers, product):
        resp = client.put(
            f"/api/products/{product.id}", json={"stock_quantity": 500}, headers=manager_headers
        )
        assert resp.status_code == 400
        assert "inventory" in resp.get_json()["error"]

    def test_empty_update(self, client, manager_headers, product):
        resp = client.put(f"/api/products/{product.id}", json={}, headers=manager_headers)
        assert resp.status_code == 400

    def test_barcode_clash_on_update(self, client, manager_headers, product, second_product):
        resp = client.put(
            f"/api/products/{second_product.id}",
            json={"barcode": product.barcode},
            headers=manager_headers,
        )
        assert resp.status_code == 409

    def test_update_missing(self, client, manager_headers, seed):
        resp = client.put("/api/products/999999", json={"name": "Ghost"}, headers=manager_headers)
        assert resp.status_code == 404

    def test_soft_delete(self, client, admin_headers, product):
        resp = client.delete(f"/api/products/{product.id}", headers=admin_headers)
        assert resp.status_code == 200

        # Still readable by id, no longer sellable or scannable
        by_id = client.get(f"/api/products/{product.id}", headers=admin_headers)
        assert by_id.get_json()["is_active"] is False
        by_barcode = client.get(f"/api/products/barcode/{product.barcode}", headers=admin_headers)
        assert by_barcode.status_code == 404

        active = client.get("/api/products?active=true", headers=admin_headers).get_json()
        assert active["count"] == 0

    def test_manager_cannot_delete(self, client, manager_headers, product):
        resp = client.delete(f"/api/products/{product.id}", headers=manager_headers)
        assert resp.status_code == 403

    def test_delete_missing(self, client, admin_headers, seed):
        assert client.delete("/api/products/999999", headers=admin_headers).status_code == 404
