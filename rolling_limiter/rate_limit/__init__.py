"""Rolling-window rate limiting.

A limiter records a microsecond timestamp per attempted action and judges
each attempt against the actions inside the trailing ``interval``. State lives
either in process memory or in Redis sorted sets shared by many processes.
"""

# Re-export models
from rolling_limiter.rate_limit.models import RateLimiterConfig, RateLimitInfo
from rolling_limiter.rate_limit.verdict import compute_verdict

# Re-export backends
from rolling_limiter.rate_limit.base import RateLimiter
from rolling_limiter.rate_limit.backends import InMemoryRateLimiter, RedisRateLimiter
from rolling_limiter.rate_limit.stores import AsyncRedisStore, SortedSetStore, SyncRedisStore
from rolling_limiter.rate_limit.factory import create_rate_limiter

__all__ = [
    # Models
    "RateLimiterConfig",
    "RateLimitInfo",
    "compute_verdict",
    # Backends
    "RateLimiter",
    "InMemoryRateLimiter",
    "RedisRateLimiter",
    # Store adapters
    "SortedSetStore",
    "AsyncRedisStore",
    "SyncRedisStore",
    # Construction
    "create_rate_limiter",
]
