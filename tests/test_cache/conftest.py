"""Shared fixtures for cache layer tests."""

import pytest
from typing import AsyncGenerator

from fakeredis import FakeAsyncRedis


@pytest.fixture
async def fake_redis() -> AsyncGenerator[FakeAsyncRedis, None]:
    """Async fakeredis client for isolated testing.

    Yields:
        A fresh FakeAsyncRedis instance with decode_responses=True.
        Automatically flushed and closed after each test.
    """
    client = FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
async def redis_manager(fake_redis: FakeAsyncRedis) -> AsyncGenerator:
    """RedisManager with injected fakeredis client (bypasses connection setup).

    Args:
        fake_redis: The fakeredis client fixture.

    Yields:
        A RedisManager that uses fakeredis internally.
    """
    from taskbridge.cache.client import RedisManager

    manager = RedisManager(redis_url="redis://fake:6379/0", key_prefix="test:")
    manager._client = fake_redis
    manager._available = True
    yield manager
    manager._client = None
    manager._available = False


@pytest.fixture
def unavailable_redis_manager():
    """RedisManager configured with no Redis URL (always unavailable)."""
    from taskbridge.cache.client import RedisManager

    return RedisManager(redis_url=None, key_prefix="test:")
