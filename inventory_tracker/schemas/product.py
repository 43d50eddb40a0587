"""
Schemas for product-related API endpoints.

These are the request-shape checks applied at the edge; the store still
enforces the stored-record invariants on its own.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, List
from pydantic import Field, field_validator, ConfigDict

from inventory_tracker.schemas.base import BaseSchema, TimestampedSchema

CENT = Decimal("0.01")
MAX_PRICE = Decimal("9999999999.99")  # NUMERIC(12, 2)
MAX_QUANTITY = 2_147_483_647  # INTEGER (int4)


class ProductValidationMixin(BaseSchema):
    """Shared validation for writable product fields."""

    @field_validator('price', mode='after', check_fields=False)
    @classmethod
    def quantize_price(cls, v):
        if v is None:
            return None
        return v.quantize(CENT, rounding=ROUND_HALF_UP)

    @field_validator('category', 'description', mode='before', check_fields=False)
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ProductCreate(ProductValidationMixin):
    """Fields accepted when creating a product"""
    name: str = Field(min_length=1, max_length=255)
    category: Optional[str] = Field(default=None, max_length=255)
    quantity: int = Field(ge=0, le=MAX_QUANTITY)
    price: Decimal = Field(ge=0, le=MAX_PRICE)
    description: Optional[str] = None

    @field_validator('name')
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('Name must not be blank')
        return v


class ProductUpdate(ProductValidationMixin):
    """
    Partial update. Only fields present in the request body are applied.
    The name is the product's key and is not accepted here.
    """
    model_config = ConfigDict(extra="forbid")

    category: Optional[str] = Field(default=None, max_length=255)
    quantity: Optional[int] = Field(default=None, ge=0, le=MAX_QUANTITY)
    price: Optional[Decimal] = Field(default=None, ge=0, le=MAX_PRICE)
    description: Optional[str] = None

    @field_validator('quantity', 'price', mode='before')
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError('Field cannot be null')
        return v


class ProductRead(TimestampedSchema):
    """Stored product as returned to clients"""
    name: str
    category: Optional[str] = None
    quantity: int
    price: Decimal
    description: Optional[str] = None


class ProductList(BaseSchema):
    items: List[ProductRead]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_prev: bool


class ProductDeleted(BaseSchema):
    name: str
    deleted: bool = True
