# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

# backend/stockbook/routes/inventory.py
"""
Inventory routes with multi-tenant support.

MULTI-TENANT: Every operation is scoped to the caller's company (g.company_id,
set by @require_auth). Routes that carry a company id in the path reject a
mismatch with 403; records owned by another company answer 404.

Create and update accept either JSON or multipart form data; a multipart
request may carry the item image in the "image" file field.
"""
from flask import Blueprint, current_app, g, request

from ..decorators import require_auth
from ..errors import ValidationError
from ..models import STOCK_STATUSES, InventoryItem, StockAdjustment
from ..responses import success
from ..services import inventory_service, reporting_service
from ..services.inventory_service import InventoryFilters
from ..services.pagination import resolve_page
from ..services.tenant_service import require_company_match
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_inventory,
    parse_date_arg,
    parse_int_arg,
    parse_signed_adjustment,
    validate_payload,
)

INVENTORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "sku", "quantity", "price_cents", "category", "supplier"},
    required_on_create={"name", "sku", "quantity", "price_cents"},
)

ADJUSTMENT_POLICY = ModelValidationPolicy(
    writable_fields={"inventory_id", "type", "quantity", "price_cents", "supplier", "notes"},
    required_on_create={"inventory_id", "type", "quantity", "price_cents"},
)

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _request_payload() -> dict:
    """JSON body, or the text fields of a form/multipart body."""
    if request.is_json:
        payload = request.get_json(silent=True)
        if payload is None:
            raise ValidationError("Invalid JSON payload")
        return payload
    return request.form.to_dict()


def _image_upload():
    file = request.files.get("image")
    if file is None or not file.filename:
        return None
    return file


def _inventory_filters() -> InventoryFilters:
    status = request.args.get("status") or None
    if status is not None and status not in STOCK_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(STOCK_STATUSES)}")

    return InventoryFilters(
        category=request.args.get("category") or None,
        status=status,
        search=request.args.get("search") or None,
        min_quantity=parse_int_arg("min_quantity", request.args.get("min_quantity")),
        max_quantity=parse_int_arg("max_quantity", request.args.get("max_quantity")),
        from_date=parse_date_arg("from_date", request.args.get("from_date")),
        to_date=parse_date_arg("to_date", request.args.get("to_date")),
    )


@inventory_bp.post("/create/<company_id>")
@require_auth
def create_inventory_route(company_id):
    """
    Create an inventory item.

    Required: name, sku, quantity, price_cents. Status is derived from quantity.
    """
    require_company_match(company_id)

    patch = validate_payload(
        model=InventoryItem,
        payload=_request_payload(),
        policy=INVENTORY_POLICY,
        partial=False,
    )
    enforce_rules_inventory(patch)

    item = inventory_service.create_inventory_item(
        company_id=g.company_id,
        patch=patch,
        image_file=_image_upload(),
    )
    return success("Inventory item created", item.to_dict(), 201)


@inventory_bp.post("/adjust/<company_id>")
@require_auth
def adjust_inventory_route(company_id):
    """
    Signed adjustment addressed by SKU.

    Body: {"sku": str, "adjustment": int}. Positive adds, negative subtracts.
    """
    require_company_match(company_id)

    sku, delta = parse_signed_adjustment(request.get_json(silent=True) or {})
    entry, item = inventory_service.adjust_by_sku(company_id=g.company_id, sku=sku, delta=delta)
    return success(
        "Inventory adjusted",
        {"item": item.to_dict(), "adjustment": entry.to_dict()},
    )


@inventory_bp.post("/adjustment")
@require_auth
def create_adjustment_route():
    """
    Append a stock adjustment.

    Body: inventory_id, type (add|subtract), quantity (> 0), price_cents,
    optional supplier and notes. Subtracting below zero clamps at zero.
    """
    patch = validate_payload(
        model=StockAdjustment,
        payload=request.get_json(silent=True) or {},
        policy=ADJUSTMENT_POLICY,
        partial=False,
    )

    entry, item = inventory_service.apply_adjustment(
        company_id=g.company_id,
        inventory_id=patch["inventory_id"],
        adjustment_type=patch["type"],
        quantity=patch["quantity"],
        price_cents=patch["price_cents"],
        supplier=patch.get("supplier"),
        notes=patch.get("notes"),
    )
    return success(
        "Stock adjustment recorded",
        {"adjustment": entry.to_dict(), "item": item.to_dict()},
        201,
    )


@inventory_bp.get("/history/<int:inventory_id>")
@require_auth
def stock_history_route(inventory_id: int):
    """Ledger entries for one item, newest first."""
    entries = inventory_service.list_stock_history(g.company_id, inventory_id)
    return success("Stock history retrieved", [entry.to_dict() for entry in entries])


@inventory_bp.get("/details/<int:inventory_id>")
@require_auth
def inventory_details_route(inventory_id: int):
    item = inventory_service.get_inventory_item(g.company_id, inventory_id)
    return success("Inventory item retrieved", item.to_dict())


@inventory_bp.put("/update/<int:inventory_id>")
@require_auth
def update_inventory_route(inventory_id: int):
    """
    Partial update.

    status is never writable; a quantity change rederives it and is written
    to the stock ledger.
    """
    patch = validate_payload(
        model=InventoryItem,
        payload=_request_payload(),
        policy=INVENTORY_POLICY,
        partial=True,
    )
    enforce_rules_inventory(patch)

    image_file = _image_upload()
    if not patch and image_file is None:
        raise ValidationError("No fields to update")

    item = inventory_service.update_inventory_item(
        company_id=g.company_id,
        inventory_id=inventory_id,
        patch=patch,
        image_file=image_file,
    )
    return success("Inventory item updated", item.to_dict())


@inventory_bp.delete("/delete/<int:inventory_id>")
@require_auth
def delete_inventory_route(inventory_id: int):
    inventory_service.delete_inventory_item(company_id=g.company_id, inventory_id=inventory_id)
    return success("Inventory item deleted", {"id": inventory_id})


@inventory_bp.get("/company-inventory")
@require_auth
def company_inventory_route():
    """
    List the caller's inventory, newest first.

    Query params:
    - category, status, search (name substring), min_quantity, max_quantity
    - from_date, to_date: creation-date range (ISO-8601)
    - page (default 1), limit (default INVENTORY_PAGE_SIZE)
    """
    page = resolve_page(
        request.args.get("page"),
        request.args.get("limit"),
        default_limit=current_app.config["INVENTORY_PAGE_SIZE"],
    )
    result = inventory_service.list_inventory(g.company_id, _inventory_filters(), page)
    return success("Inventory retrieved", result)


@inventory_bp.get("/dashboard/inventory/<company_id>")
@require_auth
def inventory_dashboard_route(company_id):
    """
    Inventory counters for the current month, or for from_date..to_date
    when from_date is given. Accepts the same filters as company-inventory.
    """
    require_company_match(company_id)

    stats = reporting_service.inventory_dashboard(g.company_id, _inventory_filters())
    return success("Inventory dashboard retrieved", stats)


@inventory_bp.get("/info")
@require_auth
def inventory_info_route():
    """Look up one of the caller's items by SKU (?sku=...)."""
    item = inventory_service.get_inventory_item_by_sku(g.company_id, (request.args.get("sku") or "").strip())
    return success("Inventory item retrieved", item.to_dict())
