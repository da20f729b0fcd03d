# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/stockbook/routes/sales.py
"""
Sales routes.

MULTI-TENANT: All sales are scoped to g.company_id. Recording, revising and
cancelling a sale move inventory in the same transaction (see sales_service).

DELETE /delete/<sale_id> is a soft cancel: the sale is kept with status
"cancelled" and its quantity is returned to stock once.
"""
from flask import Blueprint, current_app, g, request

from ..decorators import require_auth
from ..errors import ValidationError
from ..models import PAYMENT_METHODS, PAYMENT_STATUSES, SALE_STATUSES, Sale
from ..responses import success
from ..services import reporting_service, sales_service
from ..services.pagination import resolve_page
from ..services.sales_service import DETAIL_INVENTORY_FIELDS, SalesFilters
from ..services.tenant_service import require_company_match
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_sale,
    parse_date_arg,
    parse_int_arg,
    validate_payload,
)

SALE_CREATE_POLICY = ModelValidationPolicy(
    writable_fields=sales_service.SALE_CREATE_FIELDS | {
        "inventory_id",
        "quantity_sold",
        "unit_price_cents",
        "sale_date",
    },
    required_on_create={"inventory_id", "customer_name", "quantity_sold", "unit_price_cents", "payment_method"},
)

# inventory_id and sale_date are fixed once a sale is recorded
SALE_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=sales_service.SALE_REVISABLE_FIELDS | {"quantity_sold", "status"},
)

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _choice_arg(name: str, choices: tuple[str, ...]) -> str | None:
    value = request.args.get(name) or None
    if value is not None and value not in choices:
        raise ValidationError(f"{name} must be one of: {', '.join(choices)}")
    return value


def _sales_filters(*, with_dates: bool = True) -> SalesFilters:
    return SalesFilters(
        payment_method=_choice_arg("payment_method", PAYMENT_METHODS),
        payment_status=_choice_arg("payment_status", PAYMENT_STATUSES),
        status=_choice_arg("status", SALE_STATUSES),
        customer_name=request.args.get("customer_name") or None,
        sold_by=request.args.get("sold_by") or None,
        start_date=parse_date_arg("start_date", request.args.get("start_date")) if with_dates else None,
        end_date=parse_date_arg("end_date", request.args.get("end_date")) if with_dates else None,
        min_amount_cents=parse_int_arg("min_amount_cents", request.args.get("min_amount_cents")),
        max_amount_cents=parse_int_arg("max_amount_cents", request.args.get("max_amount_cents")),
        inventory_id=parse_int_arg("inventory_id", request.args.get("inventory_id")),
    )


@sales_bp.post("/create/<company_id>")
@require_auth
def create_sale_route(company_id):
    """
    Record a sale against an inventory item.

    Required: inventory_id, customer_name, quantity_sold, unit_price_cents,
    payment_method. Fails with 409 when stock is insufficient.
    """
    require_company_match(company_id)

    patch = validate_payload(
        model=Sale,
        payload=request.get_json(silent=True) or {},
        policy=SALE_CREATE_POLICY,
        partial=False,
    )
    enforce_rules_sale(patch)
    inventory_id = patch.pop("inventory_id")

    sale = sales_service.record_sale(company_id=g.company_id, inventory_id=inventory_id, patch=patch)
    return success("Sale recorded", sale.to_dict(inventory_fields=()), 201)


@sales_bp.get("/company-sales")
@require_auth
def company_sales_route():
    """
    List the caller's sales, most recent sale_date first.

    Query params:
    - payment_method, payment_status, status, customer_name, sold_by, inventory_id
    - start_date, end_date: sale-date range, applied only when both are given
    - min_amount_cents, max_amount_cents: total amount range
    - page (default 1), limit (default SALES_PAGE_SIZE)
    """
    page = resolve_page(
        request.args.get("page"),
        request.args.get("limit"),
        default_limit=current_app.config["SALES_PAGE_SIZE"],
    )
    result = sales_service.list_sales(g.company_id, _sales_filters(), page)
    return success("Sales retrieved", result)


@sales_bp.get("/dashboard/sales/<company_id>")
@require_auth
def sales_dashboard_route(company_id):
    """
    Active-sales counters.

    The monthly counters cover the current month unless from_date (and
    optionally to_date) name another period.
    """
    require_company_match(company_id)

    stats = reporting_service.sales_dashboard(
        g.company_id,
        _sales_filters(with_dates=False),
        period_start=parse_date_arg("from_date", request.args.get("from_date")),
        period_end=parse_date_arg("to_date", request.args.get("to_date")),
    )
    return success("Sales dashboard retrieved", stats)


@sales_bp.get("/details/<int:sale_id>")
@require_auth
def sale_details_route(sale_id: int):
    sale = sales_service.get_sale(g.company_id, sale_id)
    return success("Sale retrieved", sale.to_dict(inventory_fields=DETAIL_INVENTORY_FIELDS))


@sales_bp.put("/update/<int:sale_id>")
@require_auth
def update_sale_route(sale_id: int):
    """
    Revise an active sale.

    quantity_sold changes move stock by the difference; status may be set to
    "cancelled" (stock restored) or "refunded" (no stock effect).
    """
    patch = validate_payload(
        model=Sale,
        payload=request.get_json(silent=True) or {},
        policy=SALE_UPDATE_POLICY,
        partial=True,
    )
    if not patch:
        raise ValidationError("No fields to update")
    enforce_rules_sale(patch)

    sale = sales_service.revise_sale(company_id=g.company_id, sale_id=sale_id, patch=patch)
    return success("Sale updated", sale.to_dict(inventory_fields=()))


@sales_bp.delete("/delete/<int:sale_id>")
@require_auth
def delete_sale_route(sale_id: int):
    sale = sales_service.cancel_sale(company_id=g.company_id, sale_id=sale_id)
    return success("Sale cancelled and inventory restored", sale.to_dict())


@sales_bp.get("/report")
@require_auth
def sales_report_route():
    """
    Sales report over start_date..end_date (both required).

    format=detailed (default) lists the sales; format=summary returns totals
    and a payment-method breakdown.
    """
    report = reporting_service.sales_report(
        g.company_id,
        start=parse_date_arg("start_date", request.args.get("start_date")),
        end=parse_date_arg("end_date", request.args.get("end_date")),
        report_format=request.args.get("format") or "detailed",
    )
    return success("Sales report generated", report)
