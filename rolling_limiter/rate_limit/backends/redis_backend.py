"""Redis-backed rate limiter for multi-process deployments."""

import uuid
from typing import Any, Callable, List, Optional, Union

import redis.asyncio as aioredis

from rolling_limiter.core.logging import get_log_context, get_logger
from rolling_limiter.core.utils import microseconds_to_seconds
from rolling_limiter.exceptions import ConfigurationError
from rolling_limiter.rate_limit.base import Identifier, RateLimiter
from rolling_limiter.rate_limit.stores import AsyncRedisStore, SortedSetStore

logger = get_logger(__name__)


class RedisRateLimiter(RateLimiter):
    """Redis-based distributed rate limiter.

    Each identifier's history is a sorted set at ``{namespace}{id}``, scored
    by timestamp. Every call runs one MULTI/EXEC transaction (evict, insert,
    fetch, expire) so concurrent callers in different processes can never both
    observe "under the limit" before either write lands.

    Members are random UUIDs rather than timestamps: two actions can share a
    timestamp and must both be kept.
    """

    backend_name = "redis"

    def __init__(
        self,
        *,
        store: SortedSetStore,
        namespace: str,
        interval: Union[int, float],
        max_in_interval: int,
        min_difference: Union[int, float, None] = 0,
        clock: Optional[Callable[[], int]] = None,
        owns_store: bool = False,
    ):
        """Initialize Redis rate limiter.

        Args:
            store: Adapter for the Redis client in use (AsyncRedisStore or SyncRedisStore)
            namespace: Key prefix unique to this logical limiter
            interval: Rolling window width in milliseconds
            max_in_interval: Maximum actions allowed within any window
            min_difference: Minimum spacing between actions in milliseconds (0 disables)
            clock: Time source returning microseconds (defaults to wall clock)
            owns_store: Close the store's client on ``aclose()``

        Raises:
            ConfigurationError: If options are out of range, the namespace is
                empty, or no store adapter is given
        """
        super().__init__(
            interval=interval,
            max_in_interval=max_in_interval,
            min_difference=min_difference,
            clock=clock,
        )
        if not isinstance(store, SortedSetStore):
            raise ConfigurationError(
                "`store` must be a SortedSetStore adapter such as AsyncRedisStore",
                option="store",
            )
        if not namespace or not isinstance(namespace, str):
            raise ConfigurationError(
                "Must pass a non-empty string for `namespace`", option="namespace"
            )
        self.store = store
        self.namespace = namespace
        self.ttl = max(1, microseconds_to_seconds(self.interval))
        self._owns_store = owns_store

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        namespace: str,
        interval: Union[int, float],
        max_in_interval: int,
        min_difference: Union[int, float, None] = 0,
        clock: Optional[Callable[[], int]] = None,
        **client_kwargs: Any,
    ) -> "RedisRateLimiter":
        """Create a limiter with its own ``redis.asyncio`` connection pool."""
        client = aioredis.from_url(url, **client_kwargs)
        return cls(
            store=AsyncRedisStore(client),
            namespace=namespace,
            interval=interval,
            max_in_interval=max_in_interval,
            min_difference=min_difference,
            clock=clock,
            owns_store=True,
        )

    def make_key(self, id: Identifier) -> str:
        return f"{self.namespace}{self._normalize_id(id)}"

    async def clear(self, id: Identifier = None) -> None:
        """Delete the stored history for ``id``."""
        await self.store.delete(self.make_key(id))

    async def get_timestamps(self, id: Identifier, add_count: int) -> List[int]:
        """Return the timestamps in the window for ``id``, recording ``add_count`` new ones.

        Raises:
            StoreError: If the transaction fails. Not retried; the caller
                decides whether a repeated attempt is acceptable.
        """
        now = self.now()
        key = self.make_key(id)
        clear_before = now - self.interval
        new_entries = [(uuid.uuid4().hex, now + i) for i in range(add_count)]

        entries = await self.store.execute_window(key, clear_before, new_entries, self.ttl)

        logger.debug(
            "Fetched rate limit window",
            extra=get_log_context(
                limiter=type(self).__name__,
                backend=self.backend_name,
                namespace=self.namespace,
                count=add_count,
                retained=len(entries),
            ),
        )
        # Only the scores matter; members are opaque
        return [int(score) for _member, score in entries]

    async def aclose(self) -> None:
        """Close the Redis client if this limiter created it."""
        if self._owns_store:
            await self.store.aclose()
