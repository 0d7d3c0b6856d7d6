from .inventory import StockItem, CATEGORIES, DEFAULT_CATEGORY
from .sales import Invoice, PosCart
from .auth import AccessCode, LoginEvent, SessionToken

__all__ = [
    'StockItem', 'CATEGORIES', 'DEFAULT_CATEGORY',
    'Invoice', 'PosCart',
    'AccessCode', 'LoginEvent', 'SessionToken',
]
