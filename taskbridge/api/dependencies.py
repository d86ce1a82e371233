"""Request-scoped dependencies resolved from ``app.state``."""

import logging
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from taskbridge.cache.client import RedisManager
from taskbridge.db.engine import session_scope
from taskbridge.messaging.ports import JobQueue
from taskbridge.settings import Settings, load_settings

logger = logging.getLogger(__name__)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Session from the lifespan's factory.

    Raises:
        RuntimeError: If the lifespan did not create a session factory.
    """
    factory = getattr(request.app.state, "session_factory", None)
    if factory is None:
        raise RuntimeError("Database is not initialized; set DATABASE_URL and run the lifespan")

    async for session in session_scope(factory):
        yield session


def get_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        # Outside the lifespan (tests, scripts).
        settings = load_settings()
        request.app.state.settings = settings
    return settings


def get_redis_manager(request: Request) -> Optional[RedisManager]:
    return getattr(request.app.state, "redis", None)


def get_job_queue(request: Request) -> JobQueue:
    """Celery-backed queue, created on first use and kept on ``app.state``."""
    queue = getattr(request.app.state, "job_queue", None)
    if queue is None:
        from workers.queue import CeleryJobQueue

        queue = CeleryJobQueue()
        request.app.state.job_queue = queue
        logger.debug("job_queue_created: backend=celery")
    return queue
