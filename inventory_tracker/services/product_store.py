"""
Purpose: Durable keyed storage for Product records.

Role: Owns all persisted product state. Every other component reads and writes
products through this class.

Key properties:
- The product name is the key. Two concurrent creates for one name resolve to
  exactly one success and one DuplicateKeyError.
- Mutations for the same name are serialised through a per-name asyncio lock;
  mutations for different names run in parallel.
- Each mutation takes an optional ``on_commit`` callback. It runs with the
  committed record immediately after the commit returns, with no await in
  between and while the name's lock is still held, so callers can announce
  the change in commit order.
- Mutations are shielded from caller cancellation: once started they run to
  completion or to a defined failure.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, AsyncIterator, Callable, Dict, Mapping, Optional, Union

from pydantic import BaseModel
from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from inventory_tracker.core.exceptions import (
    DatabaseError,
    DuplicateKeyError,
    ImmutableFieldError,
    InvalidProductError,
    ProductNotFoundError,
)
from inventory_tracker.core.utils import model_to_schema, models_to_schemas, next_timestamp, paginate_query, utc_now
from inventory_tracker.models.product import Product
from inventory_tracker.schemas.product import MAX_QUANTITY, ProductRead

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = ("category", "quantity", "price", "description")
IMMUTABLE_FIELDS = ("name", "created_at", "updated_at")
PRICE_STEP = Decimal("0.01")

CommitHook = Callable[[ProductRead], None]
Fields = Union[Mapping[str, Any], BaseModel]


class KeyedLock:
    """
    One asyncio.Lock per key, created on first use and discarded once no task
    holds or waits on it.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
            self._users[key] = 0
        self._users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


def _log_abandoned_failure(task: asyncio.Task):
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning(f"Mutation failed after its caller was cancelled: {exc}")


async def _run_shielded(coro) -> ProductRead:
    """
    Run a mutation so that cancelling the caller does not interrupt it.

    If the caller is cancelled, the mutation still finishes and any error it
    raises is logged here instead of being left unretrieved on the task.
    """
    task = asyncio.ensure_future(coro)
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        task.add_done_callback(_log_abandoned_failure)
        raise


def _to_dict(fields: Fields, exclude_unset: bool) -> Dict[str, Any]:
    if isinstance(fields, BaseModel):
        return fields.model_dump(exclude_unset=exclude_unset)
    return dict(fields)


def _check_values(values: Dict[str, Any]) -> Dict[str, Any]:
    """Enforce the stored-record invariants on the values about to be written."""
    checked = dict(values)

    if "quantity" in checked:
        quantity = checked["quantity"]
        if quantity is None or isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidProductError(f"Quantity must be an integer, got {quantity!r}")
        if quantity < 0:
            raise InvalidProductError(f"Quantity must not be negative, got {quantity}")
        if quantity > MAX_QUANTITY:
            raise InvalidProductError(f"Quantity must not exceed {MAX_QUANTITY}, got {quantity}")

    if "price" in checked:
        price = checked["price"]
        try:
            price = price if isinstance(price, Decimal) else Decimal(str(price))
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidProductError(f"Price must be a number, got {price!r}")
        if not price.is_finite() or price < 0:
            raise InvalidProductError(f"Price must not be negative, got {price}")
        checked["price"] = price.quantize(PRICE_STEP, rounding=ROUND_HALF_UP)

    return checked


class ProductStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._locks = KeyedLock()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, record: Fields, on_commit: Optional[CommitHook] = None) -> ProductRead:
        """
        Persist a new product.

        Args:
            record: name plus any of category, quantity, price, description
            on_commit: called with the stored record right after commit

        Returns:
            The stored record with created_at == updated_at

        Raises:
            DuplicateKeyError: A live product already has this name
            InvalidProductError: The values break a stored-record invariant
        """
        values = _to_dict(record, exclude_unset=False)
        name = values.pop("name", None)
        if not isinstance(name, str) or not name:
            raise InvalidProductError("Product name must be a non-empty string")
        unknown = set(values) - set(MUTABLE_FIELDS)
        if unknown:
            raise InvalidProductError(f"Unknown product fields: {', '.join(sorted(unknown))}")
        values = _check_values(values)
        values.setdefault("quantity", 0)
        values.setdefault("price", Decimal("0.00"))

        return await _run_shielded(self._create(name, values, on_commit))

    async def _create(self, name: str, values: Dict[str, Any], on_commit: Optional[CommitHook]) -> ProductRead:
        async with self._locks.hold(name):
            async with self._session_factory() as session:
                if await session.get(Product, name) is not None:
                    raise DuplicateKeyError(name)

                now = utc_now()
                product = Product(name=name, created_at=now, updated_at=now, **values)
                session.add(product)
                try:
                    await session.commit()
                except IntegrityError as e:
                    # Another writer outside this process got there first
                    await session.rollback()
                    raise DuplicateKeyError(name) from e
                except SQLAlchemyError as e:
                    await session.rollback()
                    raise DatabaseError(f"Failed to create product '{name}': {e}") from e

                stored = model_to_schema(product, ProductRead)
                logger.info(f"Created product '{name}'")
                if on_commit is not None:
                    on_commit(stored)
                return stored

    async def update(self, name: str, fields: Fields, on_commit: Optional[CommitHook] = None) -> ProductRead:
        """
        Apply a partial update to an existing product.

        Only the supplied fields change; updated_at always moves forward.

        Raises:
            ProductNotFoundError: No product has this name
            ImmutableFieldError: The update tries to change the name or a timestamp
            InvalidProductError: The values break a stored-record invariant
        """
        changes = _to_dict(fields, exclude_unset=True)
        for field in IMMUTABLE_FIELDS:
            if field in changes:
                if field == "name" and changes[field] == name:
                    del changes[field]
                    continue
                raise ImmutableFieldError(field)
        unknown = set(changes) - set(MUTABLE_FIELDS)
        if unknown:
            raise InvalidProductError(f"Unknown product fields: {', '.join(sorted(unknown))}")
        changes = _check_values(changes)

        return await _run_shielded(self._update(name, changes, on_commit))

    async def _update(self, name: str, changes: Dict[str, Any], on_commit: Optional[CommitHook]) -> ProductRead:
        async with self._locks.hold(name):
            async with self._session_factory() as session:
                product = await session.get(Product, name)
                if product is None:
                    raise ProductNotFoundError(name)

                for key, value in changes.items():
                    setattr(product, key, value)
                product.updated_at = next_timestamp(product.updated_at)

                try:
                    await session.commit()
                except SQLAlchemyError as e:
                    await session.rollback()
                    raise DatabaseError(f"Failed to update product '{name}': {e}") from e

                stored = model_to_schema(product, ProductRead)
                logger.info(f"Updated product '{name}' fields={sorted(changes)}")
                if on_commit is not None:
                    on_commit(stored)
                return stored

    async def delete(self, name: str, on_commit: Optional[CommitHook] = None) -> ProductRead:
        """
        Permanently remove a product.

        Returns:
            The record as it was just before removal

        Raises:
            ProductNotFoundError: No product has this name
        """
        return await _run_shielded(self._delete(name, on_commit))

    async def _delete(self, name: str, on_commit: Optional[CommitHook]) -> ProductRead:
        async with self._locks.hold(name):
            async with self._session_factory() as session:
                product = await session.get(Product, name)
                if product is None:
                    raise ProductNotFoundError(name)

                removed = model_to_schema(product, ProductRead)
                await session.delete(product)
                try:
                    await session.commit()
                except SQLAlchemyError as e:
                    await session.rollback()
                    raise DatabaseError(f"Failed to delete product '{name}': {e}") from e

                logger.info(f"Deleted product '{name}'")
                if on_commit is not None:
                    on_commit(removed)
                return removed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_by_name(self, name: str) -> ProductRead:
        """Raises ProductNotFoundError if no product has this name."""
        async with self._session_factory() as session:
            product = await session.get(Product, name)
            if product is None:
                raise ProductNotFoundError(name)
            return model_to_schema(product, ProductRead)

    async def list(
        self,
        category: Optional[str] = None,
        page: int = 1,
        page_size: int = 50
    ) -> Dict[str, Any]:
        """
        List products ordered by name, optionally filtered by category.

        Returns:
            Dictionary with paginated products and pagination info
        """
        query = select(Product).order_by(Product.name)
        if category is not None:
            query = query.where(Product.category == category)

        async with self._session_factory() as session:
            pagination_result = await paginate_query(query, session, page=page, page_size=page_size)

        items = pagination_result.pop("items")
        return {
            **pagination_result,
            "items": models_to_schemas(items, ProductRead)
        }

    async def count(self) -> int:
        async with self._session_factory() as session:
            return await session.scalar(select(func.count()).select_from(Product)) or 0

    async def ping(self):
        """Round-trip to the database; raises on connection failure."""
        async with self._session_factory() as session:
            await session.execute(text("SELECT 1"))
