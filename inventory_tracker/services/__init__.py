from .change_bus import ChangeBus, Subscription
from .product_store import ProductStore
from .inventory_service import InventoryService

__all__ = [
    'ChangeBus',
    'Subscription',
    'ProductStore',
    'InventoryService',
]
