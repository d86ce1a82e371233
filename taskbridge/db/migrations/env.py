"""Alembic environment for the messaging schema (asyncpg)."""

import asyncio
from logging.config import fileConfig
from typing import Optional

from alembic import context
from sqlalchemy.engine import Connection

import taskbridge.db.models  # noqa: F401 - registers tables on Base.metadata
from taskbridge.db.base import Base
from taskbridge.db.engine import build_engine
from taskbridge.settings import load_settings

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)


def _run(connection: Optional[Connection] = None, url: Optional[str] = None) -> None:
    context.configure(
        connection=connection,
        url=url,
        target_metadata=Base.metadata,
        compare_type=True,
        literal_binds=connection is None,
    )
    with context.begin_transaction():
        context.run_migrations()


async def _run_online() -> None:
    engine = build_engine(load_settings(), pooled=False)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(lambda sync_conn: _run(connection=sync_conn))
    finally:
        await engine.dispose()


if context.is_offline_mode():
    settings = load_settings()
    if not settings.database_url:
        raise ValueError("DATABASE_URL must be set for offline migrations")
    _run(url=settings.database_url)
else:
    asyncio.run(_run_online())
