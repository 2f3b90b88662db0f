"""
Async engine/session factory.

Store and history objects take the session factory explicitly, so tests can
point them at a throwaway SQLite file instead of Postgres.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from notify_hub.db.base import Base


def create_session_factory(
    database_url: str, **engine_kwargs
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(database_url, **engine_kwargs)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return engine, session_factory


async def create_tables(engine: AsyncEngine):
    """Create all tables that don't exist yet (dev / tests; prod uses alembic)."""
    # Import models so they register on Base.metadata
    import notify_hub.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
