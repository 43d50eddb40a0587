# inventory_tracker/cli/create_tables.py
import asyncio
import click

from inventory_tracker.core.config import get_settings
from inventory_tracker.database import build_engine, init_models


@click.command()
@click.option("--database-url", default=None, help="Override DATABASE_URL from settings")
@click.option("--echo/--no-echo", default=False, help="Log the emitted SQL")
def create_tables(database_url, echo):
    """Create all database tables directly using SQLAlchemy"""
    settings = get_settings()
    updates = {"DATABASE_ECHO": echo}
    if database_url:
        updates["DATABASE_URL"] = database_url
    settings = settings.model_copy(update=updates)

    async def _create_tables():
        engine = build_engine(settings)
        try:
            await init_models(engine)
        finally:
            await engine.dispose()
        click.echo("All tables created successfully!")

    asyncio.run(_create_tables())


if __name__ == "__main__":
    create_tables()
