from .catalog import Product, Customer, Supplier
from .sales import Sale, SaleItem, AccountReceivable
from .purchases import Purchase, PurchaseItem, AccountPayable
from .documents import DocumentSequence

__all__ = [
    'Product', 'Customer', 'Supplier',
    'Sale', 'SaleItem', 'AccountReceivable',
    'Purchase', 'PurchaseItem', 'AccountPayable',
    'DocumentSequence',
]
