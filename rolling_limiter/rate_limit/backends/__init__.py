"""Storage backends for the rolling-window rate limiter."""

from rolling_limiter.rate_limit.backends.memory import InMemoryRateLimiter, TimestampEntry
from rolling_limiter.rate_limit.backends.redis_backend import RedisRateLimiter

__all__ = [
    "InMemoryRateLimiter",
    "RedisRateLimiter",
    "TimestampEntry",
]
