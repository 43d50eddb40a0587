"""
Model for the inventory tracker's product records.

A product is keyed by its name: there is no surrogate id, and the primary key
constraint is what makes a second live product with the same name impossible.
"""

from sqlalchemy import Column, String, Integer, Numeric, Text, DateTime, CheckConstraint

from inventory_tracker.database import Base


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        CheckConstraint("updated_at >= created_at", name="ck_products_updated_after_created"),
    )

    # Natural key, case-sensitive
    name = Column(String(255), primary_key=True)

    category = Column(String(255), nullable=True, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    price = Column(Numeric(12, 2, asdecimal=True), nullable=False, default=0)
    description = Column(Text, nullable=True)

    # Naive UTC, written by the store rather than server defaults so the
    # committed values are known without a refresh round-trip
    created_at = Column(DateTime(timezone=False), nullable=False)
    updated_at = Column(DateTime(timezone=False), nullable=False)

    def __repr__(self) -> str:
        return f"<Product(name={self.name!r}, quantity={self.quantity}, price={self.price})>"
