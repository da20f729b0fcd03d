"""
Stock level rules.

Two thresholds live here on purpose and are not unified:

- LOW_STOCK_TIER_MAX drives the persisted status tier:
    quantity == 0        -> out_of_stock
    0 < quantity <= 10   -> low_stock
    quantity > 10        -> in_stock
- DASHBOARD_LOW_STOCK_BELOW drives the dashboard "low stock" counter, which
  counts quantity < 10. An item holding exactly 10 units is low_stock by
  tier but not counted on the dashboard.
"""

from __future__ import annotations

LOW_STOCK_TIER_MAX = 10
DASHBOARD_LOW_STOCK_BELOW = 10


def derive_stock_status(quantity: int) -> str:
    if quantity <= 0:
        return "out_of_stock"
    if quantity <= LOW_STOCK_TIER_MAX:
        return "low_stock"
    return "in_stock"


def set_quantity(item, quantity: int) -> None:
    """Single write path for InventoryItem.quantity; keeps status in step."""
    if quantity < 0:
        raise ValueError("quantity cannot be negative")
    item.quantity = quantity
    item.status = derive_stock_status(quantity)
