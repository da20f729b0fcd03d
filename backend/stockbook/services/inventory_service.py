# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/stockbook/services/inventory_service.py

"""
Stockbook Inventory Invariants (authoritative)

Quantity and status:
- InventoryItem.quantity is a stored counter, never negative.
- InventoryItem.status is derive_stock_status(quantity); every write of
  quantity goes through stock_levels.set_quantity so the two never drift.
- Clients cannot write status directly.

Adjustments:
- add:      quantity += n
- subtract: quantity = max(0, quantity - n)   (clamped, not rejected)
- Each adjustment appends one StockAdjustment row recording the requested n,
  even when the result was clamped.
- Manual quantity corrections through update_inventory_item append a ledger
  row for the difference as well.
- Ledger rows are never updated.

Atomicity:
- The item write and its ledger row commit together (concurrency.atomic).
- The item row is locked (FOR UPDATE where supported) and version-checked,
  so two concurrent adjustments cannot lose an update.

Tenancy:
- Every read goes through tenant_service.scoped_query(company_id).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from werkzeug.datastructures import FileStorage

from ..errors import ConflictError, NotFoundError, StorageError, ValidationError
from ..extensions import db
from ..models import InventoryItem, Sale, StockAdjustment
from ..validation import enforce_rules_adjustment
from .concurrency import atomic, lock_for_update
from .image_service import release_image, save_inventory_image
from .pagination import PageRequest, paginate
from .stock_levels import derive_stock_status, set_quantity
from .tenant_service import get_scoped_or_404, scoped_query

INVENTORY_MUTABLE_FIELDS = {"name", "description", "sku", "price_cents", "category", "supplier"}

MANUAL_CORRECTION_NOTE = "manual quantity correction"


@dataclass(frozen=True)
class InventoryFilters:
    category: str | None = None
    status: str | None = None
    search: str | None = None
    min_quantity: int | None = None
    max_quantity: int | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def apply_inventory_filters(query, filters: InventoryFilters, *, include_dates: bool = True):
    if filters.category:
        query = query.filter(InventoryItem.category == filters.category)
    if filters.status:
        query = query.filter(InventoryItem.status == filters.status)
    if filters.search:
        pattern = f"%{_escape_like(filters.search)}%"
        query = query.filter(InventoryItem.name.ilike(pattern, escape="\\"))
    if filters.min_quantity is not None:
        query = query.filter(InventoryItem.quantity >= filters.min_quantity)
    if filters.max_quantity is not None:
        query = query.filter(InventoryItem.quantity <= filters.max_quantity)
    if include_dates:
        if filters.from_date is not None:
            query = query.filter(InventoryItem.created_at >= filters.from_date)
        if filters.to_date is not None:
            query = query.filter(InventoryItem.created_at <= filters.to_date)
    return query


def lock_inventory_item(company_id: int, inventory_id: int) -> InventoryItem:
    query = lock_for_update(scoped_query(InventoryItem, company_id))
    return get_scoped_or_404(InventoryItem, inventory_id, company_id, label="Inventory item", query=query)


def _ensure_sku_available(sku: str, *, exclude_id: int | None = None) -> None:
    # SKU is unique system-wide, not per company
    query = db.session.query(InventoryItem.id).filter(InventoryItem.sku == sku)
    if exclude_id is not None:
        query = query.filter(InventoryItem.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"SKU {sku} already exists")


def _append_adjustment(
    item: InventoryItem,
    *,
    adjustment_type: str,
    quantity: int,
    price_cents: int,
    quantity_before: int,
    supplier: str | None = None,
    notes: str | None = None,
) -> StockAdjustment:
    entry = StockAdjustment(
        company_id=item.company_id,
        inventory_id=item.id,
        type=adjustment_type,
        quantity=quantity,
        price_cents=price_cents,
        supplier=supplier,
        notes=notes,
        quantity_before=quantity_before,
        quantity_after=item.quantity,
    )
    db.session.add(entry)
    return entry


def _release_committed_image(ref: str | None) -> None:
    # Runs after commit; a failure leaves an orphaned file, never a dangling row
    try:
        release_image(ref)
    except StorageError:
        current_app.logger.warning("Image %s is no longer referenced but could not be removed", ref)


def get_inventory_item(company_id: int, inventory_id: int) -> InventoryItem:
    return get_scoped_or_404(InventoryItem, inventory_id, company_id, label="Inventory item")


def get_inventory_item_by_sku(company_id: int, sku: str) -> InventoryItem:
    if not sku:
        raise ValidationError("sku is required")
    item = scoped_query(InventoryItem, company_id).filter(InventoryItem.sku == sku).first()
    if item is None:
        raise NotFoundError("No inventory item found")
    return item


def create_inventory_item(
    *,
    company_id: int,
    patch: dict,
    image_file: FileStorage | None = None,
) -> InventoryItem:
    """
    Create an item from a validated patch.

    Status is derived from the initial quantity. An uploaded image is stored
    first and released again if the database write fails.
    """
    image_ref = save_inventory_image(image_file) if image_file is not None else None

    def _op():
        _ensure_sku_available(patch["sku"])
        item = InventoryItem(
            company_id=company_id,
            image=image_ref,
            **{k: v for k, v in patch.items() if k in INVENTORY_MUTABLE_FIELDS},
        )
        set_quantity(item, patch.get("quantity", 0))
        db.session.add(item)
        db.session.flush()
        return item

    try:
        item = atomic(_op)
    except IntegrityError as exc:
        release_image(image_ref)
        raise ConflictError(f"SKU {patch['sku']} already exists") from exc
    except Exception:
        release_image(image_ref)
        raise

    current_app.logger.info(
        "Inventory item created id=%s company_id=%s sku=%s quantity=%s",
        item.id, company_id, item.sku, item.quantity,
    )
    return item


def update_inventory_item(
    *,
    company_id: int,
    inventory_id: int,
    patch: dict,
    image_file: FileStorage | None = None,
) -> InventoryItem:
    """
    Partial update.

    A quantity change rederives status and appends a ledger row for the
    difference. A new image replaces and releases the old reference.
    """
    new_image_ref = save_inventory_image(image_file) if image_file is not None else None

    def _op():
        item = lock_inventory_item(company_id, inventory_id)

        if "sku" in patch and patch["sku"] != item.sku:
            _ensure_sku_available(patch["sku"], exclude_id=item.id)

        for k, v in patch.items():
            if k in INVENTORY_MUTABLE_FIELDS:
                setattr(item, k, v)

        if "quantity" in patch and patch["quantity"] != item.quantity:
            before = item.quantity
            set_quantity(item, patch["quantity"])
            delta = item.quantity - before
            _append_adjustment(
                item,
                adjustment_type="add" if delta > 0 else "subtract",
                quantity=abs(delta),
                price_cents=item.price_cents,
                quantity_before=before,
                notes=MANUAL_CORRECTION_NOTE,
            )

        old_ref = None
        if new_image_ref is not None:
            old_ref = item.image
            item.image = new_image_ref

        db.session.flush()
        return item, old_ref

    try:
        item, old_ref = atomic(_op)
    except IntegrityError as exc:
        release_image(new_image_ref)
        raise ConflictError(f"SKU {patch.get('sku')} already exists") from exc
    except Exception:
        release_image(new_image_ref)
        raise

    _release_committed_image(old_ref)
    current_app.logger.info(
        "Inventory item updated id=%s company_id=%s fields=%s",
        item.id, company_id, ",".join(sorted(patch)) or "-",
    )
    return item


def delete_inventory_item(*, company_id: int, inventory_id: int) -> None:
    """
    Delete an item, its ledger rows, and its image.

    Items referenced by sales are kept so sales history keeps its product.
    The image file is removed only once the delete has committed.
    """
    def _op():
        item = lock_inventory_item(company_id, inventory_id)

        sale_count = scoped_query(Sale, company_id).filter(Sale.inventory_id == item.id).count()
        if sale_count:
            raise ConflictError(
                "Inventory item has recorded sales and cannot be deleted",
                details={"sales": sale_count},
            )

        image_ref = item.image
        scoped_query(StockAdjustment, company_id).filter(
            StockAdjustment.inventory_id == item.id
        ).delete(synchronize_session=False)
        db.session.delete(item)
        db.session.flush()
        return image_ref

    image_ref = atomic(_op)
    _release_committed_image(image_ref)
    current_app.logger.info("Inventory item deleted id=%s company_id=%s", inventory_id, company_id)


def apply_adjustment(
    *,
    company_id: int,
    inventory_id: int,
    adjustment_type: str,
    quantity: int,
    price_cents: int,
    supplier: str | None = None,
    notes: str | None = None,
) -> tuple[StockAdjustment, InventoryItem]:
    """
    Add or subtract stock and append a ledger entry.

    Subtracting more than is on hand clamps the item at zero; the ledger
    entry still records the requested quantity.
    """
    enforce_rules_adjustment({"type": adjustment_type, "quantity": quantity, "price_cents": price_cents})

    def _op():
        item = lock_inventory_item(company_id, inventory_id)
        before = item.quantity

        if adjustment_type == "add":
            new_quantity = before + quantity
        else:
            new_quantity = max(before - quantity, 0)

        set_quantity(item, new_quantity)
        entry = _append_adjustment(
            item,
            adjustment_type=adjustment_type,
            quantity=quantity,
            price_cents=price_cents,
            quantity_before=before,
            supplier=supplier,
            notes=notes,
        )
        db.session.flush()
        return entry, item

    entry, item = atomic(_op)
    current_app.logger.info(
        "Stock adjusted inventory_id=%s company_id=%s type=%s requested=%s quantity %s -> %s",
        item.id, company_id, adjustment_type, quantity, entry.quantity_before, item.quantity,
    )
    return entry, item


def adjust_by_sku(*, company_id: int, sku: str, delta: int) -> tuple[StockAdjustment, InventoryItem]:
    """
    Signed adjustment addressed by SKU.

    Positive delta adds, negative subtracts (clamped at zero). The unit price
    recorded on the ledger entry is the item's current price.
    """
    if delta == 0:
        raise ValidationError("adjustment must not be zero")

    item = get_inventory_item_by_sku(company_id, sku)
    return apply_adjustment(
        company_id=company_id,
        inventory_id=item.id,
        adjustment_type="add" if delta > 0 else "subtract",
        quantity=abs(delta),
        price_cents=item.price_cents,
    )


def list_stock_history(company_id: int, inventory_id: int) -> list[StockAdjustment]:
    """Ledger entries for one item, newest first."""
    get_inventory_item(company_id, inventory_id)

    return (
        scoped_query(StockAdjustment, company_id)
        .filter(StockAdjustment.inventory_id == inventory_id)
        .order_by(StockAdjustment.created_at.desc(), StockAdjustment.id.desc())
        .all()
    )


def list_inventory(company_id: int, filters: InventoryFilters, page: PageRequest) -> dict:
    """Filtered, newest-first page of a company's items."""
    query = apply_inventory_filters(scoped_query(InventoryItem, company_id), filters)
    query = query.order_by(InventoryItem.created_at.desc(), InventoryItem.id.desc())

    items, meta = paginate(query, page)
    return {
        "items": [item.to_dict() for item in items],
        "pagination": meta,
    }


def find_status_drift(company_id: int | None = None) -> list[InventoryItem]:
    """Items whose stored status disagrees with their quantity."""
    query = db.session.query(InventoryItem)
    if company_id is not None:
        query = scoped_query(InventoryItem, company_id)
    return [
        item for item in query.order_by(InventoryItem.id.asc()).all()
        if item.status != derive_stock_status(item.quantity)
    ]


def inventory_value_cents(query) -> int:
    """SUM(quantity * price_cents) over an InventoryItem query."""
    total = query.with_entities(
        func.coalesce(func.sum(InventoryItem.quantity * InventoryItem.price_cents), 0)
    ).scalar()
    return int(total or 0)
