from .product import ProductCreate, ProductUpdate, ProductRead, ProductList, ProductDeleted
from .events import ChangeEvent

__all__ = [
    'ProductCreate',
    'ProductUpdate',
    'ProductRead',
    'ProductList',
    'ProductDeleted',
    'ChangeEvent',
]
