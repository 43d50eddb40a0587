class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    error_code = "service_error"


class ProductServiceError(BaseServiceError):
    """Base exception for product store and inventory service errors."""
    error_code = "product_error"


class DuplicateKeyError(ProductServiceError):
    """Raised when a product with the same name already exists."""
    error_code = "duplicate_key"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Product '{name}' already exists")


class ProductNotFoundError(ProductServiceError):
    """Raised when product is not found."""
    error_code = "not_found"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Product '{name}' not found")


class ValidationError(BaseServiceError):
    """Raised when data validation fails."""
    error_code = "validation_error"


class InvalidProductError(ValidationError):
    """Raised when a record would break a stored-product invariant."""
    error_code = "invalid_product"


class ImmutableFieldError(ValidationError):
    """Raised when an update tries to change a field fixed at creation."""
    error_code = "immutable_field"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Field '{field}' cannot be changed after creation")


class DatabaseError(BaseServiceError):
    """Exception raised for database-related errors."""
    error_code = "database_error"


class PublishDropped(BaseServiceError):
    """
    A subscriber could not take an event (queue full).

    Never raised to request callers; the bus logs it as an observability signal.
    """
    error_code = "publish_dropped"

    def __init__(self, subscriber_id: int, kind: str, name: str):
        self.subscriber_id = subscriber_id
        self.kind = kind
        self.name = name
        super().__init__(
            f"Dropped '{kind}' event for '{name}' on subscriber {subscriber_id}: queue full"
        )
