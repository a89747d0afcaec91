"""Sorted-set store adapters for the Redis rate limiter.

The limiter needs four commands executed as one MULTI/EXEC transaction:
ZREMRANGEBYSCORE, ZADD (once per new action), ZRANGE ... WITHSCORES and
EXPIRE, plus a plain DEL for ``clear``. Each supported client gets its own
adapter, chosen explicitly by the caller.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, List, Sequence, Tuple

from redis.exceptions import RedisError

from rolling_limiter.core.logging import get_log_context, get_logger
from rolling_limiter.exceptions import StoreError

logger = get_logger(__name__)

# (member, score) pairs, as stored in the sorted set
WindowEntry = Tuple[Any, float]


class SortedSetStore(ABC):
    """Minimal sorted-set capability the Redis rate limiter depends on."""

    kind: str = "abstract"

    @abstractmethod
    async def execute_window(
        self,
        key: str,
        clear_before: int,
        new_entries: Sequence[Tuple[str, int]],
        ttl_seconds: int,
    ) -> List[WindowEntry]:
        """Evict, insert, fetch and refresh expiry for ``key`` atomically.

        Args:
            key: Namespaced sorted set key
            clear_before: Entries scored at or below this are removed
            new_entries: (member, score) pairs to insert
            ttl_seconds: Expiry applied when anything was inserted

        Returns:
            All remaining (member, score) pairs in score order

        Raises:
            StoreError: If the transaction fails
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete ``key``."""

    @abstractmethod
    async def aclose(self) -> None:
        """Release the underlying client connection."""

    @staticmethod
    def _queue_window(pipe: Any, key: str, clear_before: int, new_entries, ttl_seconds: int) -> int:
        """Queue the window commands on ``pipe``. Returns the ZRANGE result index."""
        pipe.zremrangebyscore(key, 0, clear_before)
        for member, score in new_entries:
            pipe.zadd(key, {member: score})
        pipe.zrange(key, 0, -1, withscores=True)
        # Read-only queries must not keep an idle key alive
        if new_entries:
            pipe.expire(key, ttl_seconds)
        return 1 + len(new_entries)

    def _store_error(self, exc: Exception, operation: str, key: str) -> StoreError:
        logger.error(
            f"Redis {operation} failed: {exc}",
            extra=get_log_context(backend="redis", operation=operation, store=self.kind),
        )
        return StoreError(
            f"Rate limit store {operation} failed: {exc}",
            operation=operation,
            key=key,
        )


class AsyncRedisStore(SortedSetStore):
    """Adapter for ``redis.asyncio.Redis`` clients."""

    kind = "async"

    def __init__(self, client: Any):
        self._client = client

    @property
    def client(self) -> Any:
        return self._client

    async def execute_window(
        self,
        key: str,
        clear_before: int,
        new_entries: Sequence[Tuple[str, int]],
        ttl_seconds: int,
    ) -> List[WindowEntry]:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                zrange_index = self._queue_window(pipe, key, clear_before, new_entries, ttl_seconds)
                results = await pipe.execute()
        except RedisError as e:
            raise self._store_error(e, "window", key) from e
        return list(results[zrange_index])

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except RedisError as e:
            raise self._store_error(e, "delete", key) from e

    async def aclose(self) -> None:
        await self._client.aclose()


class SyncRedisStore(SortedSetStore):
    """Adapter for blocking ``redis.Redis`` clients.

    The transaction runs in a worker thread so the event loop is never
    blocked on the network round trip.
    """

    kind = "sync"

    def __init__(self, client: Any):
        self._client = client

    @property
    def client(self) -> Any:
        return self._client

    def _execute_window_blocking(
        self,
        key: str,
        clear_before: int,
        new_entries: Sequence[Tuple[str, int]],
        ttl_seconds: int,
    ) -> List[WindowEntry]:
        with self._client.pipeline(transaction=True) as pipe:
            zrange_index = self._queue_window(pipe, key, clear_before, new_entries, ttl_seconds)
            results = pipe.execute()
        return list(results[zrange_index])

    async def execute_window(
        self,
        key: str,
        clear_before: int,
        new_entries: Sequence[Tuple[str, int]],
        ttl_seconds: int,
    ) -> List[WindowEntry]:
        try:
            return await asyncio.to_thread(
                self._execute_window_blocking, key, clear_before, new_entries, ttl_seconds
            )
        except RedisError as e:
            raise self._store_error(e, "window", key) from e

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._client.delete, key)
        except RedisError as e:
            raise self._store_error(e, "delete", key) from e

    async def aclose(self) -> None:
        await asyncio.to_thread(self._client.close)
