from .auth import User
from .inventory import Product, InventoryTransaction
from .sales import Sale, SaleItem
from .settings import Setting
from .sync import SyncOperation

__all__ = [
    'User',
    'Product', 'InventoryTransaction',
    'Sale', 'SaleItem',
    'Setting',
    'SyncOperation',
]
