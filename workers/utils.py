"""Sync-to-async bridge and per-process database handles for Celery tasks."""

import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from taskbridge.db.engine import build_engine, build_session_factory

logger = logging.getLogger(__name__)

# Prefork: each worker child builds its own handles on first use.
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def run_async(coro):  # type: ignore[no-untyped-def]
    """Run ``coro`` to completion on a new event loop and return its result."""
    return asyncio.run(coro)


def get_task_settings():
    from taskbridge.settings import load_settings

    return load_settings()


def get_task_engine() -> AsyncEngine:
    """Unpooled engine for worker tasks; see ``build_engine``."""
    global _engine
    if _engine is None:
        _engine = build_engine(get_task_settings(), pooled=False)
    return _engine


def get_task_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(get_task_engine())
        logger.info("task_session_factory_created")
    return _session_factory
