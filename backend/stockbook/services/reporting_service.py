# Overview: Service-layer operations for reporting; read-only aggregates over inventory and sales.

"""
Dashboards and reports.

Nothing here writes. Each response is composed of several independent
queries, so it is a best-effort snapshot: a sale committed between two of
those queries can show up in one counter and not another.

Sales aggregates only ever count sales with status "active".
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..errors import ValidationError
from ..models import InventoryItem, Sale
from ..time_utils import month_bounds, to_utc_z, utcnow, week_bounds
from .inventory_service import InventoryFilters, apply_inventory_filters, inventory_value_cents
from .sales_service import SalesFilters, apply_sales_filters
from .stock_levels import DASHBOARD_LOW_STOCK_BELOW
from .tenant_service import scoped_query

TOP_PRODUCTS_LIMIT = 5
REPORT_FORMATS = ("detailed", "summary")


def _active_sales(company_id: int, filters: SalesFilters | None = None):
    query = scoped_query(Sale, company_id).filter(Sale.status == "active")
    if filters is not None:
        query = apply_sales_filters(query, filters, include_status=False)
    return query


def _count_and_revenue(query) -> tuple[int, int]:
    row = query.with_entities(
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.total_amount_cents), 0),
    ).one()
    return int(row[0] or 0), int(row[1] or 0)


def _in_period(query, start: datetime, end: datetime):
    return query.filter(Sale.sale_date >= start, Sale.sale_date <= end)


def payment_breakdown(query) -> list[dict]:
    rows = (
        query.with_entities(
            Sale.payment_method,
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_amount_cents), 0),
        )
        .group_by(Sale.payment_method)
        .order_by(Sale.payment_method.asc())
        .all()
    )
    return [
        {
            "payment_method": method,
            "count": int(count or 0),
            "total_cents": int(total or 0),
        }
        for method, count, total in rows
    ]


def top_products(company_id: int, query, limit: int = TOP_PRODUCTS_LIMIT) -> list[dict]:
    """
    Best sellers by units sold.

    Ties are broken by which product sold first (lowest sale id). Products
    whose inventory row no longer exists are skipped.
    """
    rows = (
        query.with_entities(
            Sale.inventory_id,
            func.sum(Sale.quantity_sold).label("total_sold"),
            func.sum(Sale.total_amount_cents).label("total_revenue"),
            func.min(Sale.id).label("first_sale_id"),
        )
        .group_by(Sale.inventory_id)
        .order_by(func.sum(Sale.quantity_sold).desc(), func.min(Sale.id).asc())
        .limit(limit)
        .all()
    )
    if not rows:
        return []

    items = {
        item.id: item
        for item in scoped_query(InventoryItem, company_id)
        .filter(InventoryItem.id.in_([row.inventory_id for row in rows]))
        .all()
    }

    result = []
    for row in rows:
        item = items.get(row.inventory_id)
        if item is None:
            continue
        result.append(
            {
                "inventory_id": row.inventory_id,
                "total_sold": int(row.total_sold or 0),
                "total_revenue_cents": int(row.total_revenue or 0),
                "product": item.to_summary(),
            }
        )
    return result


def inventory_dashboard(
    company_id: int,
    filters: InventoryFilters,
    *,
    now: datetime | None = None,
) -> dict:
    """
    Inventory counters.

    Without from_date the period is the current calendar month and only
    monthly_items is period-scoped. With from_date, every counter is limited
    to items created in [from_date, to_date or now].
    """
    now = now or utcnow()
    base = apply_inventory_filters(scoped_query(InventoryItem, company_id), filters, include_dates=False)

    if filters.from_date is not None:
        period_start = filters.from_date
        period_end = filters.to_date or now
        base = base.filter(InventoryItem.created_at >= period_start, InventoryItem.created_at <= period_end)
    else:
        period_start, period_end = month_bounds(now)

    total_items = base.count()
    monthly_items = base.filter(
        InventoryItem.created_at >= period_start,
        InventoryItem.created_at <= period_end,
    ).count()
    low_stock = base.filter(InventoryItem.quantity < DASHBOARD_LOW_STOCK_BELOW).count()

    return {
        "period": {"start": to_utc_z(period_start), "end": to_utc_z(period_end)},
        "total_items": total_items,
        "monthly_items": monthly_items,
        "total_value_cents": inventory_value_cents(base),
        "low_stock": low_stock,
    }


def sales_dashboard(
    company_id: int,
    filters: SalesFilters | None = None,
    *,
    period_start: datetime | None = None,
    period_end: datetime | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Sales counters over active sales.

    The period defaults to the current calendar month; weekly counters always
    cover the current Sunday-to-Saturday week.
    """
    now = now or utcnow()
    if period_start is None:
        period_start, default_end = month_bounds(now)
        period_end = period_end or default_end
    elif period_end is None:
        period_end = now
    week_start, week_end = week_bounds(now)

    base = _active_sales(company_id, filters)

    total_sales, total_revenue = _count_and_revenue(base)
    monthly_sales, monthly_revenue = _count_and_revenue(_in_period(base, period_start, period_end))
    weekly_sales, weekly_revenue = _count_and_revenue(_in_period(base, week_start, week_end))

    return {
        "period": {"start": to_utc_z(period_start), "end": to_utc_z(period_end)},
        "total_sales": total_sales,
        "monthly_sales": monthly_sales,
        "weekly_sales": weekly_sales,
        "total_revenue_cents": total_revenue,
        "monthly_revenue_cents": monthly_revenue,
        "weekly_revenue_cents": weekly_revenue,
        "payment_breakdown": payment_breakdown(base),
        "top_products": top_products(company_id, base),
    }


def sales_report(
    company_id: int,
    *,
    start: datetime | None,
    end: datetime | None,
    report_format: str = "detailed",
) -> dict:
    """
    Active sales with sale_date in [start, end].

    summary  -> totals, average sale value and payment breakdown
    detailed -> the matching sales, newest first
    """
    if start is None or end is None:
        raise ValidationError("Start date and end date are required")
    if start > end:
        raise ValidationError("Start date must not be after end date")
    if report_format not in REPORT_FORMATS:
        raise ValidationError(f"format must be one of: {', '.join(REPORT_FORMATS)}")

    query = _in_period(_active_sales(company_id), start, end)
    period = {"start": to_utc_z(start), "end": to_utc_z(end)}

    if report_format == "summary":
        row = query.with_entities(
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_amount_cents), 0),
            func.coalesce(func.sum(Sale.quantity_sold), 0),
        ).one()
        total_sales = int(row[0] or 0)
        total_revenue = int(row[1] or 0)
        average = round(total_revenue / total_sales, 2) if total_sales else 0

        return {
            "format": "summary",
            "period": period,
            "summary": {
                "total_sales": total_sales,
                "total_revenue_cents": total_revenue,
                "total_quantity_sold": int(row[2] or 0),
                "average_sale_value_cents": average,
            },
            "payment_method_breakdown": payment_breakdown(query),
        }

    sales = query.order_by(Sale.sale_date.desc(), Sale.id.desc()).all()
    return {
        "format": "detailed",
        "period": period,
        "sales": [sale.to_dict(inventory_fields=()) for sale in sales],
    }
