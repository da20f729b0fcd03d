"""
Sales Service - stock-backed sale bookkeeping

A sale and the inventory decrement it causes are written in one transaction.
InventoryItem.quantity always equals what stock adjustments left on hand
minus the quantity of every active sale:

- record_sale:  item.quantity -= quantity_sold          (rejects oversell)
- revise_sale:  item.quantity -= (new_qty - old_qty)    (rejects oversell)
- cancel_sale:  item.quantity += quantity_sold, status -> cancelled

Cancellation is a soft delete: the sale row stays with status "cancelled",
and a second cancel is rejected so stock is restored exactly once.
"refunded" is a bookkeeping state with no inventory effect. Both are terminal.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from flask import current_app
from sqlalchemy.orm import selectinload

from ..errors import ConflictError, InsufficientStockError, ValidationError
from ..extensions import db
from ..models import InventoryItem, Sale
from ..time_utils import utcnow
from ..validation import enforce_rules_sale
from .concurrency import atomic, lock_for_update
from .inventory_service import lock_inventory_item
from .pagination import PageRequest, paginate
from .stock_levels import set_quantity
from .tenant_service import get_scoped_or_404, scoped_query

SALE_CREATE_FIELDS = {
    "customer_name",
    "customer_email",
    "customer_phone",
    "payment_method",
    "payment_status",
    "transaction_id",
    "notes",
    "sold_by",
}

SALE_REVISABLE_FIELDS = SALE_CREATE_FIELDS | {"unit_price_cents"}

LIST_INVENTORY_FIELDS: tuple[str, ...] = ()
DETAIL_INVENTORY_FIELDS = ("description", "category")


@dataclass(frozen=True)
class SalesFilters:
    payment_method: str | None = None
    payment_status: str | None = None
    status: str | None = None
    customer_name: str | None = None
    sold_by: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    min_amount_cents: int | None = None
    max_amount_cents: int | None = None
    inventory_id: int | None = None


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def apply_sales_filters(query, filters: SalesFilters, *, include_status: bool = True):
    if filters.payment_method:
        query = query.filter(Sale.payment_method == filters.payment_method)
    if filters.payment_status:
        query = query.filter(Sale.payment_status == filters.payment_status)
    if include_status and filters.status:
        query = query.filter(Sale.status == filters.status)
    if filters.customer_name:
        query = query.filter(Sale.customer_name.ilike(f"%{_escape_like(filters.customer_name)}%", escape="\\"))
    if filters.sold_by:
        query = query.filter(Sale.sold_by.ilike(f"%{_escape_like(filters.sold_by)}%", escape="\\"))
    # Date range only applies when both ends are given
    if filters.start_date is not None and filters.end_date is not None:
        query = query.filter(Sale.sale_date >= filters.start_date, Sale.sale_date <= filters.end_date)
    if filters.min_amount_cents is not None:
        query = query.filter(Sale.total_amount_cents >= filters.min_amount_cents)
    if filters.max_amount_cents is not None:
        query = query.filter(Sale.total_amount_cents <= filters.max_amount_cents)
    if filters.inventory_id is not None:
        query = query.filter(Sale.inventory_id == filters.inventory_id)
    return query


def _locked_sale(company_id: int, sale_id: int) -> Sale:
    query = lock_for_update(scoped_query(Sale, company_id))
    return get_scoped_or_404(Sale, sale_id, company_id, label="Sale", query=query)


def _require_active(sale: Sale, action: str) -> None:
    if sale.status == "active":
        return
    if sale.status == "cancelled" and action == "cancel":
        raise ConflictError("Sale already cancelled")
    raise ConflictError(
        f"Cannot {action} a {sale.status} sale",
        details={"sale_id": sale.id, "status": sale.status},
    )


def _cancel_locked(sale: Sale) -> None:
    _require_active(sale, "cancel")

    item = (
        lock_for_update(scoped_query(InventoryItem, sale.company_id))
        .filter(InventoryItem.id == sale.inventory_id)
        .first()
    )
    if item is not None:
        set_quantity(item, item.quantity + sale.quantity_sold)
    else:
        current_app.logger.warning(
            "Cancelling sale %s without restoring stock: inventory item %s is gone",
            sale.id, sale.inventory_id,
        )

    sale.status = "cancelled"


def record_sale(*, company_id: int, inventory_id: int, patch: dict) -> Sale:
    """
    Record a sale and decrement stock in one transaction.

    patch must carry quantity_sold, unit_price_cents, customer_name and
    payment_method; other SALE_CREATE_FIELDS and sale_date are optional.
    """
    for field in ("quantity_sold", "unit_price_cents", "customer_name", "payment_method"):
        if patch.get(field) in (None, ""):
            raise ValidationError(f"Missing required fields: {field}")
    enforce_rules_sale(patch)

    quantity_sold = patch["quantity_sold"]
    unit_price_cents = patch["unit_price_cents"]

    def _op():
        item = lock_inventory_item(company_id, inventory_id)
        if item.quantity < quantity_sold:
            raise InsufficientStockError(
                "Insufficient stock available",
                available=item.quantity,
                requested=quantity_sold,
            )

        set_quantity(item, item.quantity - quantity_sold)

        fields = {"payment_status": "completed"}
        fields.update({k: v for k, v in patch.items() if k in SALE_CREATE_FIELDS and v is not None})
        sale = Sale(
            company_id=company_id,
            inventory_id=item.id,
            quantity_sold=quantity_sold,
            unit_price_cents=unit_price_cents,
            total_amount_cents=quantity_sold * unit_price_cents,
            sale_date=patch.get("sale_date") or utcnow(),
            status="active",
            **fields,
        )
        db.session.add(sale)
        db.session.flush()
        return sale

    sale = atomic(_op)
    current_app.logger.info(
        "Sale recorded id=%s company_id=%s inventory_id=%s quantity=%s total_cents=%s",
        sale.id, company_id, sale.inventory_id, sale.quantity_sold, sale.total_amount_cents,
    )
    return sale


def revise_sale(*, company_id: int, sale_id: int, patch: dict) -> Sale:
    """
    Edit an active sale.

    - quantity_sold: the difference is taken from (or returned to) stock;
      selling more leaves less on hand, so stock moves by -(new - old)
    - unit_price_cents / quantity_sold: total is recomputed
    - status "cancelled": same path as cancel_sale
    - status "refunded": terminal, no stock effect
    """
    enforce_rules_sale(patch)
    new_status = patch.get("status")
    if new_status == "cancelled" and "quantity_sold" in patch:
        raise ValidationError("quantity_sold cannot be changed while cancelling a sale")

    def _op():
        sale = _locked_sale(company_id, sale_id)
        _require_active(sale, "revise")

        new_quantity = patch.get("quantity_sold")
        if new_quantity is not None and new_quantity != sale.quantity_sold:
            item = lock_inventory_item(company_id, sale.inventory_id)
            extra = new_quantity - sale.quantity_sold
            if item.quantity - extra < 0:
                raise InsufficientStockError(
                    "Insufficient stock for this update",
                    available=item.quantity,
                    requested=extra,
                )
            set_quantity(item, item.quantity - extra)
            sale.quantity_sold = new_quantity

        for k, v in patch.items():
            if k in SALE_REVISABLE_FIELDS:
                setattr(sale, k, v)

        sale.total_amount_cents = sale.quantity_sold * sale.unit_price_cents

        if new_status == "cancelled":
            _cancel_locked(sale)
        elif new_status == "refunded":
            sale.status = "refunded"

        db.session.flush()
        return sale

    sale = atomic(_op)
    current_app.logger.info(
        "Sale revised id=%s company_id=%s fields=%s status=%s",
        sale.id, company_id, ",".join(sorted(patch)) or "-", sale.status,
    )
    return sale


def cancel_sale(*, company_id: int, sale_id: int) -> Sale:
    """Cancel an active sale and return its quantity to stock."""
    def _op():
        sale = _locked_sale(company_id, sale_id)
        _cancel_locked(sale)
        db.session.flush()
        return sale

    sale = atomic(_op)
    current_app.logger.info(
        "Sale cancelled id=%s company_id=%s restored=%s",
        sale.id, company_id, sale.quantity_sold,
    )
    return sale


def get_sale(company_id: int, sale_id: int) -> Sale:
    return get_scoped_or_404(Sale, sale_id, company_id, label="Sale")


def list_sales(company_id: int, filters: SalesFilters, page: PageRequest) -> dict:
    """Filtered page of a company's sales, most recent sale_date first."""
    query = apply_sales_filters(scoped_query(Sale, company_id), filters)
    query = query.order_by(Sale.sale_date.desc(), Sale.id.desc())

    sales, meta = paginate(query.options(selectinload(Sale.inventory_item)), page)
    return {
        "sales": [sale.to_dict(inventory_fields=LIST_INVENTORY_FIELDS) for sale in sales],
        "pagination": meta,
    }
