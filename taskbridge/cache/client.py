"""Async Redis connection shared by the API process and the workers."""

import logging
import time
from typing import Any, Optional

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)

RECONNECT_BACKOFF_SECONDS = 30.0


class RedisManager:
    """Lazily connected async Redis client.

    Redis only backs notification rate limiting, so an unset URL or an
    unreachable server is not an error: callers get None and carry on. After a
    failed connect, further attempts are skipped for ``reconnect_backoff``
    seconds so a Redis outage does not add a connect timeout to every send.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        key_prefix: str = "tb:",
        reconnect_backoff: float = RECONNECT_BACKOFF_SECONDS,
    ) -> None:
        self._redis_url = redis_url
        self._key_prefix = key_prefix
        self._reconnect_backoff = reconnect_backoff
        self._client: Optional[aioredis.Redis] = None
        self._available = False
        self._retry_at = 0.0

    @property
    def configured(self) -> bool:
        return self._redis_url is not None

    @property
    def available(self) -> bool:
        return self.configured and self._available

    @property
    def key_prefix(self) -> str:
        return self._key_prefix

    def _mark_down(self, error: BaseException) -> None:
        logger.warning(
            "redis_unavailable: error=%s, retry_in=%ss", error, self._reconnect_backoff
        )
        self._client = None
        self._available = False
        self._retry_at = time.monotonic() + self._reconnect_backoff

    async def get_client(self) -> Optional[aioredis.Redis]:
        """Connected client, or None when Redis is unset, down, or backing off."""
        if not self.configured:
            return None
        if self._available and self._client is not None:
            return self._client
        if time.monotonic() < self._retry_at:
            return None

        client = aioredis.from_url(
            self._redis_url,
            decode_responses=True,
            socket_connect_timeout=5.0,
            socket_timeout=5.0,
        )
        try:
            await client.ping()  # type: ignore[misc]
        except (aioredis.ConnectionError, aioredis.TimeoutError, OSError) as e:
            await client.aclose()
            self._mark_down(e)
            return None

        self._client = client
        self._available = True
        logger.info("redis_connected: prefix=%s", self._key_prefix)
        return client

    def report_failure(self, error: BaseException) -> None:
        """Drop the current connection after a command failed on it."""
        self._mark_down(error)

    async def close(self) -> None:
        client, self._client = self._client, None
        self._available = False
        if client is not None:
            await client.aclose()
            logger.info("redis_closed")

    async def health_check(self) -> dict[str, Any]:
        """Ping Redis and report ``status`` plus ``latency_ms``."""
        if not self.configured:
            return {"status": "not_configured", "latency_ms": 0.0}

        start = time.monotonic()
        client = await self.get_client()
        if client is None:
            return {"status": "unavailable", "latency_ms": 0.0}
        try:
            await client.ping()  # type: ignore[misc]
        except (aioredis.RedisError, OSError) as e:
            self._mark_down(e)
            return {"status": "unavailable", "latency_ms": 0.0}
        return {"status": "ok", "latency_ms": round((time.monotonic() - start) * 1000.0, 2)}
