"""Engine and session factories shared by the API process and Celery workers."""

import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from taskbridge.settings import Settings

logger = logging.getLogger(__name__)


def build_engine(settings: Settings, pooled: bool = True) -> AsyncEngine:
    """Create the async engine for ``settings.database_url``.

    The API process keeps a connection pool. Workers pass ``pooled=False``
    because asyncpg connections are bound to the event loop that opened them
    and every task runs on a fresh loop.

    Raises:
        ValueError: If DATABASE_URL is not configured.
    """
    if not settings.database_url:
        raise ValueError("DATABASE_URL is not configured")

    if not pooled:
        logger.info("db_engine_created: pool=none")
        return create_async_engine(settings.database_url, poolclass=NullPool)

    logger.info(
        "db_engine_created: pool_size=%s, max_overflow=%s",
        settings.database_pool_size,
        settings.database_pool_overflow,
    )
    return create_async_engine(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_pool_overflow,
        pool_pre_ping=True,
        pool_recycle=1800,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Loaded rows stay usable after commit; jobs read them when building results.
    return async_sessionmaker(engine, expire_on_commit=False)


async def session_scope(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Yield one session and roll back anything left uncommitted on error."""
    async with factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
