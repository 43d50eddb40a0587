"""
Utility functions for the application.
"""
from datetime import datetime, timedelta, timezone
from typing import Type, TypeVar, List, Any, Dict

from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar('T', bound=BaseModel)

# Smallest step a stored timestamp can advance by
TIMESTAMP_RESOLUTION = timedelta(microseconds=1)


def utc_now() -> datetime:
    """Naive UTC timestamp, matching how timestamp columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def next_timestamp(previous: datetime) -> datetime:
    """Current UTC time, forced strictly after ``previous``."""
    now = utc_now()
    if now <= previous:
        return previous + TIMESTAMP_RESOLUTION
    return now


def model_to_schema(db_model: Any, schema_class: Type[T]) -> T:
    """
    Convert a SQLAlchemy model instance to a Pydantic schema instance.

    Args:
        db_model: SQLAlchemy model instance
        schema_class: Pydantic schema class

    Returns:
        Instance of the Pydantic schema
    """
    return schema_class.model_validate(db_model, from_attributes=True)


def models_to_schemas(db_models: List[Any], schema_class: Type[T]) -> List[T]:
    """Convert a list of SQLAlchemy model instances to Pydantic schema instances."""
    return [model_to_schema(model, schema_class) for model in db_models]


async def paginate_query(
    query: Select,
    db: AsyncSession,
    page: int = 1,
    page_size: int = 10
) -> Dict[str, Any]:
    """
    Paginate a SQLAlchemy select.

    Args:
        query: SQLAlchemy select statement
        db: Database session
        page: Page number (1-indexed)
        page_size: Number of items per page

    Returns:
        Dictionary with pagination information and items
    """
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = await db.scalar(count_query) or 0

    offset = (page - 1) * page_size
    result = await db.execute(query.offset(offset).limit(page_size))
    items = result.scalars().all()

    total_pages = (total + page_size - 1) // page_size if total > 0 else 1

    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1
    }
