# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that cross-company access is denied for every resource.

These tests create two companies with their own tokens and items, then
verify that:
1. Company A cannot read or write data owned by Company B
2. A foreign company id in the URL is rejected with 403
3. Foreign records look exactly like missing ones (404, no existence leak)
4. Listings and dashboards never include another company's rows
"""

import pytest
from flask import g

from stockbook.errors import ForbiddenError
from stockbook.models import InventoryItem, Sale
from stockbook.services import sales_service
from stockbook.services.tenant_service import (
    TenantAccessError,
    get_current_company_id,
    require_company_match,
    scoped_query,
)


def _sale_for(company, item):
    return sales_service.record_sale(
        company_id=company.id,
        inventory_id=item.id,
        patch={
            "customer_name": "Tenant Customer",
            "quantity_sold": 1,
            "unit_price_cents": 100,
            "payment_method": "cash",
        },
    )


class TestTenantServiceHelpers:
    """Test tenant_service helper functions."""

    def test_require_company_match_valid(self, app, db_session, company_a):
        assert require_company_match(str(company_a.id), company_a.id) == company_a.id

    def test_require_company_match_cross_tenant(self, app, db_session, company_a, company_b):
        with app.test_request_context():
            with pytest.raises(ForbiddenError):
                require_company_match(company_b.id, company_a.id)

    def test_require_company_match_garbage(self, app, db_session, company_a):
        with pytest.raises(ForbiddenError):
            require_company_match("not-a-number", company_a.id)

    def test_missing_tenant_context(self, app):
        with app.test_request_context():
            g.company_id = None
            with pytest.raises(TenantAccessError):
                get_current_company_id()

    def test_scoped_query_filters_company(self, db_session, company_a, company_b, item_a, item_b):
        rows_a = scoped_query(InventoryItem, company_a.id).all()
        rows_b = scoped_query(InventoryItem, company_b.id).all()
        assert [row.id for row in rows_a] == [item_a.id]
        assert [row.id for row in rows_b] == [item_b.id]


class TestInventoryIsolation:
    def test_cannot_read_foreign_item(self, client, db_session, headers_a, item_b):
        assert client.get(f"/api/inventory/details/{item_b.id}", headers=headers_a).status_code == 404
        assert client.get(f"/api/inventory/history/{item_b.id}", headers=headers_a).status_code == 404
        assert client.get(f"/api/inventory/info?sku={item_b.sku}", headers=headers_a).status_code == 404

    def test_cannot_update_foreign_item(self, client, db_session, headers_a, item_b):
        resp = client.put(f"/api/inventory/update/{item_b.id}", json={"quantity": 0}, headers=headers_a)
        assert resp.status_code == 404
        assert db_session.get(InventoryItem, item_b.id).quantity == 15

    def test_cannot_delete_foreign_item(self, client, db_session, headers_a, item_b):
        resp = client.delete(f"/api/inventory/delete/{item_b.id}", headers=headers_a)
        assert resp.status_code == 404
        assert db_session.get(InventoryItem, item_b.id) is not None

    def test_cannot_adjust_foreign_sku(self, client, db_session, company_a, headers_a, item_b):
        resp = client.post(
            f"/api/inventory/adjust/{company_a.id}",
            json={"sku": item_b.sku, "adjustment": -5},
            headers=headers_a,
        )
        assert resp.status_code == 404
        assert db_session.get(InventoryItem, item_b.id).quantity == 15

    def test_listing_only_own_items(self, client, db_session, headers_a, item_a, item_b):
        resp = client.get("/api/inventory/company-inventory", headers=headers_a)
        skus = [item["sku"] for item in resp.json["data"]["items"]]
        assert skus == [item_a.sku]


class TestSalesIsolation:
    def test_cannot_read_foreign_sale(self, client, db_session, company_b, headers_a, item_b):
        sale = _sale_for(company_b, item_b)
        resp = client.get(f"/api/sales/details/{sale.id}", headers=headers_a)
        assert resp.status_code == 404

    def test_cannot_cancel_foreign_sale(self, client, db_session, company_b, headers_a, item_b):
        sale = _sale_for(company_b, item_b)
        resp = client.delete(f"/api/sales/delete/{sale.id}", headers=headers_a)
        assert resp.status_code == 404
        assert db_session.get(Sale, sale.id).status == "active"
        assert db_session.get(InventoryItem, item_b.id).quantity == 14

    def test_listing_and_reports_only_own_sales(
        self, client, db_session, company_a, company_b, headers_a, item_a, item_b
    ):
        _sale_for(company_a, item_a)
        _sale_for(company_b, item_b)
        _sale_for(company_b, item_b)

        listing = client.get("/api/sales/company-sales", headers=headers_a).json["data"]
        assert listing["pagination"]["total"] == 1

        dashboard = client.get(f"/api/sales/dashboard/sales/{company_a.id}", headers=headers_a).json["data"]
        assert dashboard["total_sales"] == 1
