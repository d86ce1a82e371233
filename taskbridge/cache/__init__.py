"""Redis connection and rate limiting."""

from taskbridge.cache.client import RedisManager
from taskbridge.cache.rate_limiter import RateLimiter, RateLimitResult

__all__ = [
    "RateLimiter",
    "RateLimitResult",
    "RedisManager",
]
