from .auth import User, SessionToken
from .inventory import Product, StockLedgerEntry
from .sales import Sale, SaleLine
from .purchases import Purchase, PurchaseLine
from .documents import DocumentSequence

__all__ = [
    'User', 'SessionToken',
    'Product', 'StockLedgerEntry',
    'Sale', 'SaleLine',
    'Purchase', 'PurchaseLine',
    'DocumentSequence',
]
