# inventory_tracker/database.py

from typing import Optional
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from inventory_tracker.core.config import Settings, get_settings

Base = declarative_base()


def build_engine(settings: Optional[Settings] = None) -> AsyncEngine:
    """Create the async engine described by settings."""
    settings = settings or get_settings()
    database_url = settings.async_database_url
    if not database_url:
        raise ValueError("DATABASE_URL is not set in environment variables")

    engine_kwargs = {"echo": settings.DATABASE_ECHO, "future": True}
    if not database_url.startswith("sqlite"):
        engine_kwargs.update(
            pool_size=10,
            max_overflow=20,
            pool_timeout=30,
            pool_recycle=1800,
        )
    return create_async_engine(database_url, **engine_kwargs)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables registered on Base."""
    # Import models so they register with Base.metadata
    from inventory_tracker import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
