from .auth import User, SessionToken
from .inventory import Item, SalePosting, normalize_item_name
from .invoices import Invoice, InvoiceLineItem, InvoiceSequenceCounter
from .settings import ShopSetting

__all__ = [
    'User', 'SessionToken',
    'Item', 'SalePosting', 'normalize_item_name',
    'Invoice', 'InvoiceLineItem', 'InvoiceSequenceCounter',
    'ShopSetting',
]
