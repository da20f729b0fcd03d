# Overview: Pytest coverage for dashboards and sales reports.

from datetime import datetime

import pytest

from stockbook.errors import ValidationError
from stockbook.models import InventoryItem
from stockbook.services import reporting_service, sales_service
from stockbook.services.inventory_service import InventoryFilters
from stockbook.services.sales_service import SalesFilters
from stockbook.time_utils import month_bounds, week_bounds

# Wednesday; its week runs Sunday 2024-05-12 through Saturday 2024-05-18
NOW = datetime(2024, 5, 15, 12, 0, 0)


def _sell(company, item, quantity, *, when, unit_price_cents=1000, payment_method="cash"):
    return sales_service.record_sale(
        company_id=company.id,
        inventory_id=item.id,
        patch={
            "customer_name": "Customer",
            "quantity_sold": quantity,
            "unit_price_cents": unit_price_cents,
            "payment_method": payment_method,
            "sale_date": when,
        },
    )


def _set_created_at(db_session, item, when):
    db_session.query(InventoryItem).filter_by(id=item.id).update({"created_at": when})
    db_session.commit()


class TestPeriodBounds:
    def test_month_bounds_cover_last_day(self):
        start, end = month_bounds(datetime(2024, 2, 10, 8, 30))
        assert start == datetime(2024, 2, 1)
        assert end == datetime(2024, 2, 29, 23, 59, 59, 999999)

    def test_week_bounds_sunday_to_saturday(self):
        start, end = week_bounds(NOW)
        assert start == datetime(2024, 5, 12)
        assert end == datetime(2024, 5, 18, 23, 59, 59, 999999)

    def test_week_bounds_on_sunday(self):
        start, _ = week_bounds(datetime(2024, 5, 12, 0, 0, 1))
        assert start == datetime(2024, 5, 12)


class TestInventoryDashboard:
    def test_counters(self, db_session, company_a, company_b, make_item):
        old = make_item(company_a, sku="OLD-1", quantity=20, price_cents=500)
        new_low = make_item(company_a, sku="NEW-1", quantity=3, price_cents=1000)
        edge = make_item(company_a, sku="EDGE-10", quantity=10, price_cents=100)
        make_item(company_b, sku="OTHER-1", quantity=1, price_cents=100)

        _set_created_at(db_session, old, datetime(2024, 3, 1))
        _set_created_at(db_session, new_low, datetime(2024, 5, 2))
        _set_created_at(db_session, edge, datetime(2024, 5, 31, 23, 0))

        stats = reporting_service.inventory_dashboard(company_a.id, InventoryFilters(), now=NOW)

        assert stats["total_items"] == 3
        assert stats["monthly_items"] == 2
        assert stats["total_value_cents"] == 20 * 500 + 3 * 1000 + 10 * 100
        # ten units is low_stock by tier but not below the dashboard threshold
        assert stats["low_stock"] == 1

    def test_explicit_period_scopes_every_counter(self, db_session, company_a, make_item):
        old = make_item(company_a, sku="OLD-1", quantity=20, price_cents=500)
        new = make_item(company_a, sku="NEW-1", quantity=2, price_cents=1000)
        _set_created_at(db_session, old, datetime(2024, 1, 5))
        _set_created_at(db_session, new, datetime(2024, 4, 5))

        stats = reporting_service.inventory_dashboard(
            company_a.id,
            InventoryFilters(from_date=datetime(2024, 4, 1), to_date=datetime(2024, 4, 30)),
            now=NOW,
        )
        assert stats["total_items"] == 1
        assert stats["monthly_items"] == 1
        assert stats["total_value_cents"] == 2000
        assert stats["low_stock"] == 1

    def test_low_stock_respects_quantity_filters(self, db_session, company_a, make_item):
        make_item(company_a, sku="A", quantity=2)
        make_item(company_a, sku="B", quantity=8)

        stats = reporting_service.inventory_dashboard(
            company_a.id,
            InventoryFilters(min_quantity=5),
            now=NOW,
        )
        assert stats["total_items"] == 1
        assert stats["low_stock"] == 1

    def test_empty(self, db_session, company_a):
        stats = reporting_service.inventory_dashboard(company_a.id, InventoryFilters(), now=NOW)
        assert stats["total_items"] == 0
        assert stats["monthly_items"] == 0
        assert stats["total_value_cents"] == 0
        assert stats["low_stock"] == 0


class TestSalesDashboard:
    def test_counters(self, db_session, company_a, make_item):
        bolts = make_item(company_a, sku="BOLT", quantity=100, price_cents=100)
        nuts = make_item(company_a, sku="NUT", quantity=100, price_cents=50)

        _sell(company_a, bolts, 4, when=datetime(2024, 5, 13), unit_price_cents=100, payment_method="card")
        _sell(company_a, nuts, 10, when=datetime(2024, 5, 2), unit_price_cents=50)
        _sell(company_a, bolts, 1, when=datetime(2024, 4, 20), unit_price_cents=100)
        cancelled = _sell(company_a, nuts, 50, when=datetime(2024, 5, 14), unit_price_cents=50)
        sales_service.cancel_sale(company_id=company_a.id, sale_id=cancelled.id)

        stats = reporting_service.sales_dashboard(company_a.id, now=NOW)

        assert stats["total_sales"] == 3
        assert stats["monthly_sales"] == 2
        assert stats["weekly_sales"] == 1
        assert stats["total_revenue_cents"] == 400 + 500 + 100
        assert stats["monthly_revenue_cents"] == 900
        assert stats["weekly_revenue_cents"] == 400

        breakdown = {row["payment_method"]: row for row in stats["payment_breakdown"]}
        assert breakdown["card"] == {"payment_method": "card", "count": 1, "total_cents": 400}
        assert breakdown["cash"] == {"payment_method": "cash", "count": 2, "total_cents": 600}

        top = stats["top_products"]
        assert [row["product"]["sku"] for row in top] == ["NUT", "BOLT"]
        assert top[0]["total_sold"] == 10
        assert top[1]["total_sold"] == 5
        assert top[1]["total_revenue_cents"] == 500

    def test_top_products_tie_goes_to_first_sold(self, db_session, company_a, make_item):
        first = make_item(company_a, sku="FIRST", quantity=50)
        second = make_item(company_a, sku="SECOND", quantity=50)

        _sell(company_a, first, 3, when=datetime(2024, 5, 1))
        _sell(company_a, second, 3, when=datetime(2024, 5, 2))

        stats = reporting_service.sales_dashboard(company_a.id, now=NOW)
        assert [row["product"]["sku"] for row in stats["top_products"]] == ["FIRST", "SECOND"]

    def test_top_products_limited_to_five(self, db_session, company_a, make_item):
        for n in range(7):
            item = make_item(company_a, sku=f"SKU-{n}", quantity=50)
            _sell(company_a, item, n + 1, when=datetime(2024, 5, 1))

        stats = reporting_service.sales_dashboard(company_a.id, now=NOW)
        assert [row["total_sold"] for row in stats["top_products"]] == [7, 6, 5, 4, 3]

    def test_filters_apply(self, db_session, company_a, make_item):
        item = make_item(company_a, sku="X", quantity=50)
        _sell(company_a, item, 1, when=datetime(2024, 5, 1), payment_method="card")
        _sell(company_a, item, 1, when=datetime(2024, 5, 1), payment_method="cash")

        stats = reporting_service.sales_dashboard(company_a.id, SalesFilters(payment_method="card"), now=NOW)
        assert stats["total_sales"] == 1
        assert [row["payment_method"] for row in stats["payment_breakdown"]] == ["card"]

    def test_empty_period_returns_zeros(self, db_session, company_a, item_a):
        _sell(company_a, item_a, 1, when=datetime(2024, 5, 1))

        stats = reporting_service.sales_dashboard(
            company_a.id,
            period_start=datetime(2020, 1, 1),
            period_end=datetime(2020, 1, 31),
            now=datetime(2020, 1, 15),
        )
        assert stats["monthly_sales"] == 0
        assert stats["monthly_revenue_cents"] == 0
        assert stats["weekly_sales"] == 0

    def test_no_sales_at_all(self, db_session, company_a):
        stats = reporting_service.sales_dashboard(company_a.id, now=NOW)
        assert stats["total_sales"] == 0
        assert stats["total_revenue_cents"] == 0
        assert stats["payment_breakdown"] == []
        assert stats["top_products"] == []


class TestSalesReport:
    def _seed(self, company, make_item):
        item = make_item(company, sku="R-1", quantity=100, price_cents=250)
        _sell(company, item, 2, when=datetime(2024, 5, 3), unit_price_cents=250, payment_method="card")
        _sell(company, item, 4, when=datetime(2024, 5, 9), unit_price_cents=250)
        _sell(company, item, 1, when=datetime(2024, 6, 1), unit_price_cents=250)
        return item

    def test_summary(self, db_session, company_a, make_item):
        self._seed(company_a, make_item)

        report = reporting_service.sales_report(
            company_a.id,
            start=datetime(2024, 5, 1),
            end=datetime(2024, 5, 31, 23, 59, 59),
            report_format="summary",
        )
        assert report["summary"] == {
            "total_sales": 2,
            "total_revenue_cents": 1500,
            "total_quantity_sold": 6,
            "average_sale_value_cents": 750,
        }
        methods = {row["payment_method"] for row in report["payment_method_breakdown"]}
        assert methods == {"card", "cash"}

    def test_detailed_newest_first(self, db_session, company_a, make_item):
        self._seed(company_a, make_item)

        report = reporting_service.sales_report(
            company_a.id,
            start=datetime(2024, 5, 1),
            end=datetime(2024, 5, 31, 23, 59, 59),
        )
        assert report["format"] == "detailed"
        assert [s["quantity_sold"] for s in report["sales"]] == [4, 2]
        assert report["sales"][0]["inventory"]["sku"] == "R-1"

    def test_summary_empty_range(self, db_session, company_a):
        report = reporting_service.sales_report(
            company_a.id,
            start=datetime(2020, 1, 1),
            end=datetime(2020, 1, 2),
            report_format="summary",
        )
        assert report["summary"]["total_sales"] == 0
        assert report["summary"]["average_sale_value_cents"] == 0
        assert report["payment_method_breakdown"] == []

    @pytest.mark.parametrize(
        "start,end,fmt",
        [
            (None, datetime(2024, 1, 1), "summary"),
            (datetime(2024, 1, 1), None, "detailed"),
            (datetime(2024, 2, 1), datetime(2024, 1, 1), "detailed"),
            (datetime(2024, 1, 1), datetime(2024, 2, 1), "csv"),
        ],
    )
    def test_invalid_arguments(self, db_session, company_a, start, end, fmt):
        with pytest.raises(ValidationError):
            reporting_service.sales_report(company_a.id, start=start, end=end, report_format=fmt)
