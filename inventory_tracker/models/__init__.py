from .product import Product

# This ensures all models are registered with SQLAlchemy
__all__ = [
    'Product',
]
