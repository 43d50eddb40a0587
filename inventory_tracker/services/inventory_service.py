"""
Purpose: The central service for product mutations and their live notifications.

Role: Binds a ProductStore mutation and the matching ChangeBus publication into
one operation per request.

- create_product / update_product / delete_product run the store mutation and,
  only once it has committed, publish a created / updated / deleted event.
- The event is published from the store's commit hook, so it goes out before
  any later commit can be announced and never for a mutation that failed.
- Store errors (DuplicateKeyError, ProductNotFoundError, validation errors)
  propagate unchanged. Nothing is retried.
"""

import logging
from typing import Any, Dict, Optional

from inventory_tracker.schemas.events import ChangeEvent
from inventory_tracker.schemas.product import ProductRead
from inventory_tracker.services.change_bus import ChangeBus
from inventory_tracker.services.product_store import Fields, ProductStore

logger = logging.getLogger(__name__)


class InventoryService:
    def __init__(self, store: ProductStore, bus: ChangeBus):
        self.store = store
        self.bus = bus

    async def create_product(self, fields: Fields) -> ProductRead:
        """
        Creates a product and announces it.

        Args:
            fields: Validated product data

        Returns:
            The stored product

        Raises:
            DuplicateKeyError: If a product with this name exists
        """
        return await self.store.create(
            fields,
            on_commit=lambda record: self.bus.publish(ChangeEvent.created(record)),
        )

    async def update_product(self, name: str, fields: Fields) -> ProductRead:
        """
        Update a product and announce the new state.

        Raises:
            ProductNotFoundError: If product not found
        """
        return await self.store.update(
            name,
            fields,
            on_commit=lambda record: self.bus.publish(ChangeEvent.updated(record)),
        )

    async def delete_product(self, name: str) -> Dict[str, Any]:
        """
        Delete a product and announce its removal.

        Raises:
            ProductNotFoundError: If product not found
        """
        removed = await self.store.delete(
            name,
            on_commit=lambda record: self.bus.publish(ChangeEvent.deleted(record.name)),
        )
        return {"name": removed.name, "deleted": True}

    async def get_product(self, name: str) -> ProductRead:
        return await self.store.find_by_name(name)

    async def list_products(
        self,
        category: Optional[str] = None,
        page: int = 1,
        page_size: int = 50
    ) -> Dict[str, Any]:
        return await self.store.list(category=category, page=page, page_size=page_size)
