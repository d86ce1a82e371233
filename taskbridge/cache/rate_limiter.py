"""Fixed-window send rate limiter backed by Redis counters."""

import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

from pydantic import BaseModel, Field
from redis.exceptions import RedisError

from taskbridge.cache.client import RedisManager

logger = logging.getLogger(__name__)


class RateLimitResult(BaseModel):
    """Outcome of one rate limit check."""

    allowed: bool
    remaining: int = Field(ge=0)
    reset_at: datetime
    limit: int = Field(gt=0)


class RateLimiter:
    """Counts outbound sends per integration in a fixed window.

    INCR and TTL run in one transaction; EXPIRE is set only by the first hit
    of a window. Without Redis, or when a command fails, every check is
    allowed and a warning is logged (degraded mode).

    Key format: ``{prefix}rate:{integration_id}:{resource}``
    """

    def __init__(self, redis_manager: RedisManager) -> None:
        self._redis_manager: RedisManager = redis_manager

    async def check_rate_limit(
        self,
        integration_id: UUID,
        resource: str,
        limit: int,
        window_seconds: int,
    ) -> RateLimitResult:
        """Count one attempt against the window and decide whether it may proceed.

        Args:
            integration_id: Integration the send belongs to.
            resource: Counter name, e.g. "send".
            limit: Maximum attempts per window.
            window_seconds: Window length.

        Returns:
            RateLimitResult; ``allowed`` is True in degraded mode.
        """
        try:
            client = await self._redis_manager.get_client()
            if client is None:
                logger.warning(
                    "rate_limit_degraded_mode: integration_id=%s, resource=%s, redis_unavailable=True",
                    integration_id,
                    resource,
                )
                return self._degraded(limit, window_seconds)

            key: str = self._key(integration_id, resource)
            async with client.pipeline(transaction=True) as pipe:  # type: ignore[union-attr]
                pipe.incr(key)  # type: ignore[union-attr]
                pipe.ttl(key)  # type: ignore[union-attr]
                results = await pipe.execute()  # type: ignore[union-attr]
            count: int = results[0]
            ttl: int = results[1]

            # First hit in a window starts its expiry.
            if ttl < 0:
                await client.expire(key, window_seconds)  # type: ignore[misc, union-attr]
                ttl = window_seconds

            allowed = count <= limit
            remaining = max(0, limit - count)
            logger.debug(
                "rate_limit_check: integration_id=%s, resource=%s, count=%d, limit=%d, allowed=%s",
                integration_id,
                resource,
                count,
                limit,
                allowed,
            )
            return RateLimitResult(
                allowed=allowed,
                remaining=remaining,
                reset_at=datetime.now(timezone.utc) + timedelta(seconds=ttl),
                limit=limit,
            )

        except (RedisError, OSError) as e:
            logger.warning(
                "rate_limit_check_error: integration_id=%s, resource=%s, error=%s",
                integration_id,
                resource,
                str(e),
            )
            self._redis_manager.report_failure(e)
            return self._degraded(limit, window_seconds)

    @staticmethod
    def _degraded(limit: int, window_seconds: int) -> RateLimitResult:
        return RateLimitResult(
            allowed=True,
            remaining=limit,
            reset_at=datetime.now(timezone.utc) + timedelta(seconds=window_seconds),
            limit=limit,
        )

    def _key(self, integration_id: UUID, resource: str) -> str:
        return f"{self._redis_manager.key_prefix}rate:{integration_id}:{resource}"
