from .auth import User, SessionToken, ROLES
from .catalog import Supplier, Product, PRODUCT_CATEGORIES, PAYMENT_TERMS
from .customers import Customer, CUSTOMER_TYPES
from .inventory import InventoryRecord, StockMovement, derive_stock_status, STOCK_STATUSES, MOVEMENT_TYPES
from .sales import Sale, SaleLine, SALE_STATUSES, TERMINAL_STATUSES, PAYMENT_METHODS

__all__ = [
    'User', 'SessionToken', 'ROLES',
    'Supplier', 'Product', 'PRODUCT_CATEGORIES', 'PAYMENT_TERMS',
    'Customer', 'CUSTOMER_TYPES',
    'InventoryRecord', 'StockMovement', 'derive_stock_status', 'STOCK_STATUSES', 'MOVEMENT_TYPES',
    'Sale', 'SaleLine', 'SALE_STATUSES', 'TERMINAL_STATUSES', 'PAYMENT_METHODS',
]
