"""
Core module exports.
"""
from .enums import ChangeKind

from .exceptions import (
    BaseServiceError,
    ProductServiceError,
    DuplicateKeyError,
    ProductNotFoundError,
    ValidationError,
    InvalidProductError,
    ImmutableFieldError,
    DatabaseError,
    PublishDropped
)

from .utils import (
    model_to_schema,
    models_to_schemas,
    paginate_query
)
