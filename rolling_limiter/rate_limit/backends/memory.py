"""In-process rate limiter backend."""

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union

from rolling_limiter.core.config import settings
from rolling_limiter.core.logging import get_log_context, get_logger
from rolling_limiter.rate_limit.base import Identifier, RateLimiter

logger = get_logger(__name__)


@dataclass
class TimestampEntry:
    """Retained timestamps for one identifier plus the entry's expiry."""
    timestamps: List[int] = field(default_factory=list)
    expires_at: int = 0


class InMemoryRateLimiter(RateLimiter):
    """Rate limiter keeping each identifier's history in process memory.

    Suitable for single-process deployments. Each entry carries its own
    deadline, ``interval`` after the last recorded action; expired entries are
    treated as absent on access and reclaimed by ``cleanup()``, which can run
    periodically via ``start_sweeper()``.

    No lock is needed: ``get_timestamps`` never awaits, so one call's
    read-evict-append runs in a single event loop step and cannot interleave
    with another call.
    """

    backend_name = "memory"

    def __init__(
        self,
        *,
        interval: Union[int, float],
        max_in_interval: int,
        min_difference: Union[int, float, None] = 0,
        clock: Optional[Callable[[], int]] = None,
    ):
        super().__init__(
            interval=interval,
            max_in_interval=max_in_interval,
            min_difference=min_difference,
            clock=clock,
        )
        self._storage: Dict[str, TimestampEntry] = {}
        self._sweep_task: Optional[asyncio.Task] = None
        self._shutdown_event: Optional[asyncio.Event] = None

    def entry_count(self) -> int:
        """Number of identifiers with unexpired history."""
        now = self.now()
        return sum(1 for entry in self._storage.values() if entry.expires_at > now)

    async def clear(self, id: Identifier = None) -> None:
        """Forget all recorded actions for ``id``."""
        self._storage.pop(self._normalize_id(id), None)

    async def get_timestamps(self, id: Identifier, add_count: int) -> List[int]:
        """Return the retained timestamps for ``id``, recording ``add_count`` new ones."""
        key = self._normalize_id(id)
        now = self.now()
        clear_before = now - self.interval

        entry = self._storage.get(key)
        if entry is not None and entry.expires_at <= now:
            del self._storage[key]
            entry = None

        stored = [t for t in entry.timestamps if t > clear_before] if entry else []
        for i in range(add_count):
            stored.append(now + i)

        if add_count > 0:
            self._storage[key] = TimestampEntry(
                timestamps=stored, expires_at=now + self.interval
            )
        elif entry is not None:
            entry.timestamps = stored

        return list(stored)

    async def cleanup(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        now = self.now()
        expired = [key for key, entry in self._storage.items() if entry.expires_at <= now]
        for key in expired:
            del self._storage[key]
        if expired:
            logger.debug(
                f"Swept {len(expired)} expired rate limit entries",
                extra=get_log_context(limiter=type(self).__name__, backend=self.backend_name),
            )
        return len(expired)

    async def start_sweeper(self, interval_seconds: Optional[float] = None) -> None:
        """Start a background task that calls ``cleanup()`` periodically."""
        if self._sweep_task is not None:
            return
        self._shutdown_event = asyncio.Event()
        sweep_interval = interval_seconds or settings.memory_sweep_interval_seconds
        self._sweep_task = asyncio.create_task(self._sweep_loop(sweep_interval))
        logger.info("Started in-memory rate limit sweeper")

    async def stop_sweeper(self) -> None:
        """Stop the background sweeper, if running."""
        if self._sweep_task is None:
            return
        self._shutdown_event.set()
        try:
            await asyncio.wait_for(self._sweep_task, timeout=5.0)
        except asyncio.TimeoutError:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
        self._sweep_task = None
        logger.info("Stopped in-memory rate limit sweeper")

    async def _sweep_loop(self, sweep_interval: float) -> None:
        """Background loop for periodic expiry sweeps."""
        while not self._shutdown_event.is_set():
            try:
                await asyncio.wait_for(
                    self._shutdown_event.wait(),
                    timeout=sweep_interval,
                )
            except asyncio.TimeoutError:
                pass
            if self._shutdown_event.is_set():
                break
            await self.cleanup()

    async def aclose(self) -> None:
        """Stop background work. Stored history is kept."""
        await self.stop_sweeper()
