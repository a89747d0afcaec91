"""Shared fixtures for rate limiter tests.

Provides a deterministic microsecond clock and an in-memory stand-in for the
handful of Redis sorted-set commands the limiter uses, so the same
behavioural scenarios run against every backend without a Redis server.
"""

import threading
from typing import Any, Callable, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest

from rolling_limiter.core.utils import milliseconds_to_microseconds
from rolling_limiter.rate_limit import (
    AsyncRedisStore,
    InMemoryRateLimiter,
    RedisRateLimiter,
    SyncRedisStore,
)


class FakeClock:
    """Deterministic clock returning microseconds."""

    def __init__(self, start: int = 0) -> None:
        self.current = start

    def __call__(self) -> int:
        return self.current

    def set_ms(self, milliseconds: float) -> None:
        self.current = milliseconds_to_microseconds(milliseconds)

    def advance_ms(self, milliseconds: float) -> None:
        self.current += milliseconds_to_microseconds(milliseconds)


class FakeSortedSetServer:
    """Sorted sets with per-key expiry, applied atomically per transaction."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.data: Dict[str, Dict[str, float]] = {}
        self.expires_at: Dict[str, int] = {}
        self.commands: List[Tuple[Any, ...]] = []
        self.transactions = 0
        self.fail_with: Optional[Exception] = None
        self._lock = threading.Lock()

    def _expire_if_needed(self, key: str) -> None:
        deadline = self.expires_at.get(key)
        if deadline is not None and deadline <= self.clock():
            self.data.pop(key, None)
            self.expires_at.pop(key, None)

    def run(self, queued: List[Tuple[Any, ...]]) -> List[Any]:
        if self.fail_with is not None:
            raise self.fail_with
        with self._lock:
            self.transactions += 1
            self.commands.extend(queued)
            return [self._apply(*cmd) for cmd in queued]

    def _apply(self, name: str, key: str, *args: Any) -> Any:
        self._expire_if_needed(key)
        if name == "zremrangebyscore":
            low, high = args
            zset = self.data.get(key, {})
            doomed = [m for m, s in zset.items() if low <= s <= high]
            for member in doomed:
                del zset[member]
            if not zset:
                self.data.pop(key, None)
            return len(doomed)
        if name == "zadd":
            (mapping,) = args
            zset = self.data.setdefault(key, {})
            added = sum(1 for m in mapping if m not in zset)
            zset.update({m: float(s) for m, s in mapping.items()})
            return added
        if name == "zrange":
            zset = self.data.get(key, {})
            return sorted(
                ((m.encode(), s) for m, s in zset.items()),
                key=lambda pair: (pair[1], pair[0]),
            )
        if name == "expire":
            (seconds,) = args
            if key not in self.data:
                return False
            self.expires_at[key] = self.clock() + seconds * 1_000_000
            return True
        if name == "delete":
            existed = key in self.data
            self.data.pop(key, None)
            self.expires_at.pop(key, None)
            return int(existed)
        raise AssertionError(f"unexpected command {name}")

    def scores(self, key: str) -> List[float]:
        self._expire_if_needed(key)
        return sorted(self.data.get(key, {}).values())


class _FakePipeline:
    def __init__(self, server: FakeSortedSetServer) -> None:
        self.server = server
        self.queued: List[Tuple[Any, ...]] = []

    def zremrangebyscore(self, key, low, high):
        self.queued.append(("zremrangebyscore", key, low, high))
        return self

    def zadd(self, key, mapping):
        self.queued.append(("zadd", key, dict(mapping)))
        return self

    def zrange(self, key, start, end, withscores=False):
        assert (start, end, withscores) == (0, -1, True)
        self.queued.append(("zrange", key))
        return self

    def expire(self, key, seconds):
        self.queued.append(("expire", key, seconds))
        return self


class FakeAsyncPipeline(_FakePipeline):
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.queued = []

    async def execute(self):
        return self.server.run(self.queued)


class FakeSyncPipeline(_FakePipeline):
    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.queued = []

    def execute(self):
        return self.server.run(self.queued)


def make_async_client(server: FakeSortedSetServer) -> MagicMock:
    """Mock ``redis.asyncio.Redis`` client backed by ``server``."""
    client = MagicMock()
    client.pipeline.side_effect = lambda transaction=True: FakeAsyncPipeline(server)

    async def mock_delete(key):
        if server.fail_with is not None:
            raise server.fail_with
        return server.run([("delete", key)])[0]

    client.delete = AsyncMock(side_effect=mock_delete)
    client.aclose = AsyncMock()
    return client


def make_sync_client(server: FakeSortedSetServer) -> MagicMock:
    """Mock blocking ``redis.Redis`` client backed by ``server``."""
    client = MagicMock()
    client.pipeline.side_effect = lambda transaction=True: FakeSyncPipeline(server)

    def mock_delete(key):
        if server.fail_with is not None:
            raise server.fail_with
        return server.run([("delete", key)])[0]

    client.delete.side_effect = mock_delete
    return client


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def redis_server(clock: FakeClock) -> FakeSortedSetServer:
    return FakeSortedSetServer(clock)


@pytest.fixture
def async_redis_client(redis_server: FakeSortedSetServer) -> MagicMock:
    return make_async_client(redis_server)


@pytest.fixture
def sync_redis_client(redis_server: FakeSortedSetServer) -> MagicMock:
    return make_sync_client(redis_server)


@pytest.fixture(params=["memory", "redis-async", "redis-sync"])
def create_limiter(request, clock, redis_server) -> Callable[..., Any]:
    """Factory building a limiter on each backend with the fake clock."""

    def _create(**options: Any):
        if request.param == "memory":
            return InMemoryRateLimiter(clock=clock, **options)
        if request.param == "redis-async":
            store = AsyncRedisStore(make_async_client(redis_server))
        else:
            store = SyncRedisStore(make_sync_client(redis_server))
        return RedisRateLimiter(
            store=store,
            namespace="rolling-limiter-test:",
            clock=clock,
            **options,
        )

    return _create
