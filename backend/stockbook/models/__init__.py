from .tenancy import Company, ApiToken
from .inventory import InventoryItem, StockAdjustment, STOCK_STATUSES, ADJUSTMENT_TYPES
from .sales import Sale, PAYMENT_METHODS, PAYMENT_STATUSES, SALE_STATUSES

__all__ = [
    'Company', 'ApiToken',
    'InventoryItem', 'StockAdjustment', 'STOCK_STATUSES', 'ADJUSTMENT_TYPES',
    'Sale', 'PAYMENT_METHODS', 'PAYMENT_STATUSES', 'SALE_STATUSES',
]
