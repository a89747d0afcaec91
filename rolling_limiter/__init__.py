"""Rolling-window rate limiting, in memory or backed by Redis."""

from rolling_limiter.exceptions import ConfigurationError, RateLimiterError, StoreError
from rolling_limiter.rate_limit import (
    AsyncRedisStore,
    InMemoryRateLimiter,
    RateLimiter,
    RateLimiterConfig,
    RateLimitInfo,
    RedisRateLimiter,
    SortedSetStore,
    SyncRedisStore,
    compute_verdict,
    create_rate_limiter,
)

__version__ = "0.5.0"

__all__ = [
    "AsyncRedisStore",
    "ConfigurationError",
    "InMemoryRateLimiter",
    "RateLimitInfo",
    "RateLimiter",
    "RateLimiterConfig",
    "RateLimiterError",
    "RedisRateLimiter",
    "SortedSetStore",
    "StoreError",
    "SyncRedisStore",
    "compute_verdict",
    "create_rate_limiter",
]
