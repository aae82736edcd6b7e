"""
Database engine configuration.

This module handles async engine creation and the declarative base used by
the canonical table definitions in ``bizledger.app.models``.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.orm import declarative_base
from bizledger.app.core.config import settings

# Create declarative base for models
Base = declarative_base()


def build_engine(database_url: str = None) -> AsyncEngine:
    """
    Create the async engine for the configured database.

    Pool sizing only applies to server databases; SQLite URLs get the
    dialect's default pool.
    """
    url = database_url or settings.database_url
    options = {"echo": settings.db_echo, "future": True}
    if not url.startswith("sqlite"):
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return create_async_engine(url, **options)


async def create_tables(engine: AsyncEngine) -> None:
    """Create the canonical tables (no-op for tables that already exist)."""
    # Import models to ensure they are registered with Base
    import bizledger.app.models.registry  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
