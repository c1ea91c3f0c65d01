"""
Reporting and CSV export tests.

Refunded sales must drop out of every revenue figure.
"""

import csv
import os
from datetime import timedelta

import pytest

from retailpos.extensions import db
from retailpos.models import Sale
from retailpos.services import reporting_service, sales_service, export_service
from retailpos.services.export_service import ExportError
from retailpos.services.reporting_service import ReportError
from retailpos.time_utils import utcnow


@pytest.fixture
def sales(product, second_product, cashier_user, admin_user):
    """Two completed sales today and one refunded."""
    cash = sales_service.create_sale(
        user_id=cashier_user.id,
        items=[{"product_id": product.id, "quantity": 3}],
        payment_method="cash",
    )
    card = sales_service.create_sale(
        user_id=cashier_user.id,
        items=[
            {"product_id": product.id, "quantity": 1},
            {"product_id": second_product.id, "quantity": 2},
        ],
        payment_method="card",
    )
    refunded = sales_service.create_sale(
        user_id=cashier_user.id,
        items=[{"product_id": second_product.id, "quantity": 10}],
    )
    sales_service.refund_sale(refunded.id, admin_user.id)
    return cash, card, refunded


class TestReports:
    def test_daily_summary(self, sales):
        summary = reporting_service.daily_summary()
        assert summary["total_transactions"] == 2
        assert summary["total_items_sold"] == 6
        # 6.567 + (6.97 * 1.1)
        assert summary["total_revenue"] == pytest.approx(14.234)
        assert summary["tax_collected"] == pytest.approx(0.597 + 0.697)
        assert summary["average_transaction_value"] == pytest.approx(7.117)

    def test_daily_summary_for_quiet_day(self, seed):
        summary = reporting_service.daily_summary(utcnow().date() - timedelta(days=3))
        assert summary["total_transactions"] == 0
        assert summary["total_revenue"] == 0.0
        assert summary["average_transaction_value"] == 0.0

    def test_sales_by_date(self, sales):
        today = utcnow().date()
        rows = reporting_service.sales_by_date(today - timedelta(days=1), today)
        assert len(rows) == 1
        assert rows[0]["date"] == today.isoformat()
        assert rows[0]["transaction_count"] == 2

    def test_sales_by_date_requires_range(self, seed):
        with pytest.raises(ReportError):
            reporting_service.sales_by_date(None, utcnow().date())
        with pytest.raises(ReportError):
            today = utcnow().date()
            reporting_service.sales_by_date(today, today - timedelta(days=1))

    def test_sales_by_category(self, sales):
        rows = {r["category"]: r for r in reporting_service.sales_by_category()}
        assert rows["Beverages"]["items_sold"] == 4
        assert rows["Snacks"]["items_sold"] == 2
        assert rows["Beverages"]["total_revenue"] == pytest.approx(7.96)

    def test_top_products(self, sales, product):
        rows = reporting_service.top_products(limit=1)
        assert len(rows) == 1
        assert rows[0]["id"] == product.id
        assert rows[0]["total_sold"] == 4
        assert rows[0]["transaction_count"] == 2

    def test_hourly_pattern(self, sales):
        slots = reporting_service.hourly_pattern()
        assert len(slots) == 24
        assert sum(s["transaction_count"] for s in slots) == 2

    def test_payment_methods(self, sales):
        rows = {r["payment_method"]: r for r in reporting_service.payment_methods()}
        assert set(rows) == {"cash", "card"}
        assert rows["card"]["total_revenue"] == pytest.approx(7.667)

    def test_unspecified_payment_method(self, product, cashier_user):
        sales_service.create_sale(
            user_id=cashier_user.id,
            items=[{"product_id": product.id, "quantity": 1}],
        )
        rows = reporting_service.payment_methods()
        assert rows[0]["payment_method"] == "Not Specified"

    def test_dashboard(self, sales, product):
        data = reporting_service.dashboard()
        assert data["today"]["transaction_count"] == 2
        assert data["month"]["transaction_count"] == 2
        assert data["inventory"]["total_products"] == 2
        assert data["top_products"][0]["id"] == product.id

    def test_old_sales_excluded_from_today(self, sales):
        cash = sales[0]
        db.session.query(Sale).filter_by(id=cash.id).update(
            {"created_at": utcnow() - timedelta(days=40)}, synchronize_session=False
        )
        db.session.commit()
        assert reporting_service.daily_summary()["total_transactions"] == 1


class TestAnalyticsApi:
    def test_sales_by_date_needs_bounds(self, client, cashier_headers):
        resp = client.get("/api/analytics/sales-by-date", headers=cashier_headers)
        assert resp.status_code == 400

    def test_bad_date(self, client, cashier_headers):
        resp = client.get("/api/analytics/daily-summary?date=31-12-2024", headers=cashier_headers)
        assert resp.status_code == 400

    def test_endpoints(self, client, cashier_headers, sales):
        today = utcnow().date().isoformat()
        for path in (
            "/api/analytics/dashboard",
            f"/api/analytics/daily-summary?date={today}",
            f"/api/analytics/sales-by-date?start_date={today}&end_date={today}",
            "/api/analytics/sales-by-category",
            "/api/analytics/top-products?limit=5",
            "/api/analytics/hourly-pattern",
            "/api/analytics/payment-methods",
        ):
            resp = client.get(path, headers=cashier_headers)
            assert resp.status_code == 200, path


class TestExport:
    def _read(self, path):
        with open(path, newline="", encoding="utf-8") as fh:
            return list(csv.DictReader(fh))

    def test_sales_export(self, sales):
        result = export_service.export_csv("sales")
        assert result["records"] == 3
        assert result["filename"].startswith("sales_export_")
        assert result["url"] == f"/exports/{result['filename']}"

        rows = self._read(result["path"])
        assert {r["status"] for r in rows} == {"completed", "refunded"}
        assert rows[0]["username"] == "cashier1"

    def test_products_export(self, product, second_product):
        result = export_service.export_csv("products")
        rows = self._read(result["path"])
        assert [r["barcode"] for r in rows] == [product.barcode, second_product.barcode]

    def test_inventory_export(self, sales):
        result = export_service.export_csv("inventory")
        rows = self._read(result["path"])
        types = [r["transaction_type"] for r in rows]
        assert types.count("sale") == 4
        assert types.count("return") == 1

    def test_invalid_type(self, seed):
        with pytest.raises(ExportError):
            export_service.export_csv("customers")
        with pytest.raises(ExportError):
            export_service.export_csv(None)

    def test_export_endpoint_and_download(self, app, client, manager_headers, cashier_headers, product):
        resp = client.get("/api/analytics/export?type=products", headers=manager_headers)
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["records"] == 1
        assert os.path.exists(os.path.join(app.config["EXPORTS_DIR"], data["filename"]))

        download = client.get(data["url"], headers=manager_headers)
        assert download.status_code == 200
        assert b"Coca Cola 500ml" in download.data
        assert "attachment" in download.headers["Content-Disposition"]

        assert client.get(data["url"], headers=cashier_headers).status_code == 403

    def test_export_endpoint_rejects_unknown_type(self, client, admin_headers):
        resp = client.get("/api/analytics/export?type=users", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid export type"
