from .auth import User
from .catalog import ItemCategory, Item, Warehouse
from .stock import StockLevel, StockMovement, ImmutableRecordError

__all__ = [
    'User',
    'ItemCategory', 'Item', 'Warehouse',
    'StockLevel', 'StockMovement', 'ImmutableRecordError',
]
