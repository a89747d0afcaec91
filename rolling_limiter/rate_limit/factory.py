"""Settings-driven limiter construction."""

from typing import Any, Callable, Optional, Union

import redis
import redis.asyncio as aioredis

from rolling_limiter.core.config import Settings, settings as default_settings
from rolling_limiter.core.logging import get_logger
from rolling_limiter.rate_limit.backends import InMemoryRateLimiter, RedisRateLimiter
from rolling_limiter.rate_limit.base import RateLimiter
from rolling_limiter.rate_limit.stores import AsyncRedisStore, SortedSetStore, SyncRedisStore

logger = get_logger(__name__)


def _build_store(client: Optional[Any], cfg: Settings) -> tuple[SortedSetStore, bool]:
    """Wrap ``client`` (or a new client for ``cfg.redis_url``) in its adapter.

    The adapter follows ``cfg.redis_client_kind``; the client's type is never
    inspected. Returns the store and whether the limiter owns its client.
    """
    if cfg.redis_client_kind == "sync":
        if client is None:
            return SyncRedisStore(redis.from_url(cfg.redis_url)), True
        return SyncRedisStore(client), False

    if client is None:
        return AsyncRedisStore(aioredis.from_url(cfg.redis_url)), True
    return AsyncRedisStore(client), False


def create_rate_limiter(
    *,
    namespace: Optional[str] = None,
    interval: Union[int, float, None] = None,
    max_in_interval: Optional[int] = None,
    min_difference: Union[int, float, None] = None,
    client: Optional[Any] = None,
    store: Optional[SortedSetStore] = None,
    clock: Optional[Callable[[], int]] = None,
    settings: Optional[Settings] = None,
) -> RateLimiter:
    """Create a limiter for the backend selected in settings.

    Keyword arguments override the corresponding settings. With the Redis
    backend, ``store`` takes precedence over ``client``; with neither, a client
    is created from ``redis_url``. A Redis backend that cannot be built raises
    instead of silently degrading to per-process limits.

    Args:
        namespace: Redis key prefix (defaults to settings.namespace)
        interval: Window width in milliseconds (defaults to settings.interval_ms)
        max_in_interval: Max actions per window (defaults to settings.max_in_interval)
        min_difference: Min spacing in milliseconds (defaults to settings.min_difference_ms)
        client: Redis client matching settings.redis_client_kind
        store: Ready-made store adapter
        clock: Time source returning microseconds
        settings: Settings to read instead of the global instance

    Returns:
        InMemoryRateLimiter or RedisRateLimiter
    """
    cfg = settings or default_settings
    options = {
        "interval": cfg.interval_ms if interval is None else interval,
        "max_in_interval": cfg.max_in_interval if max_in_interval is None else max_in_interval,
        "min_difference": cfg.min_difference_ms if min_difference is None else min_difference,
        "clock": clock,
    }

    if cfg.backend == "redis":
        owns_store = False
        if store is None:
            store, owns_store = _build_store(client, cfg)
        limiter: RateLimiter = RedisRateLimiter(
            store=store,
            namespace=namespace or cfg.namespace,
            owns_store=owns_store,
            **options,
        )
        logger.info(f"Using Redis rate limiter backend ({store.kind} client)")
        return limiter

    limiter = InMemoryRateLimiter(**options)
    logger.debug("Using in-memory rate limiter backend")
    return limiter
