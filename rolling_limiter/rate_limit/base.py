"""Base rate limiter shared by all storage backends."""

from typing import Callable, List, Optional, Union

from rolling_limiter.core.logging import get_log_context, get_logger
from rolling_limiter.core.utils import (
    Microseconds,
    get_current_microseconds,
    hash_identifier,
)
from rolling_limiter.rate_limit.models import RateLimiterConfig, RateLimitInfo
from rolling_limiter.rate_limit.verdict import compute_verdict

logger = get_logger(__name__)

Identifier = Union[str, int, None]


class RateLimiter:
    """Rolling-window rate limiter.

    Backends only know how to read (and optionally extend) an identifier's
    timestamp history; this class turns that history into verdicts.

    Every attempted action is recorded, including blocked ones. Checking the
    count and writing the timestamp happen in one atomic step, so a client
    that keeps hammering the limiter stays blocked until it backs off.
    """

    backend_name = "base"

    def __init__(
        self,
        *,
        interval: Union[int, float],
        max_in_interval: int,
        min_difference: Union[int, float, None] = 0,
        clock: Optional[Callable[[], int]] = None,
    ):
        """Initialize the limiter.

        Args:
            interval: Rolling window width in milliseconds
            max_in_interval: Maximum actions allowed within any window
            min_difference: Minimum spacing between actions in milliseconds (0 disables)
            clock: Time source returning microseconds (defaults to wall clock)

        Raises:
            ConfigurationError: If any option is out of range
        """
        self.config = RateLimiterConfig.from_milliseconds(
            interval, max_in_interval, min_difference
        )
        self._clock = clock or get_current_microseconds

    @property
    def interval(self) -> Microseconds:
        return self.config.interval

    @property
    def max_in_interval(self) -> int:
        return self.config.max_in_interval

    @property
    def min_difference(self) -> Microseconds:
        return self.config.min_difference

    def now(self) -> Microseconds:
        """Current time in microseconds according to this limiter's clock."""
        return Microseconds(int(self._clock()))

    async def limit_with_info(self, id: Identifier = None, count: int = 1) -> RateLimitInfo:
        """Attempt ``count`` actions for ``id`` and describe the outcome.

        The actions are recorded whether or not they are blocked.

        Args:
            id: Identifier to limit; None uses one shared default scope
            count: Number of actions attempted at once

        Returns:
            RateLimitInfo for the last of the attempted actions
        """
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise ValueError("count must be a positive integer")

        timestamps = await self.get_timestamps(id, count)
        info = self._calculate_info(timestamps, new_count=count)
        if info.blocked:
            logger.debug(
                "Action blocked",
                extra=get_log_context(
                    limiter=type(self).__name__,
                    backend=self.backend_name,
                    key_hash=hash_identifier(self._normalize_id(id)),
                    count=count,
                    blocked=True,
                    ms_until_allowed=info.milliseconds_until_allowed,
                ),
            )
        return info

    async def would_limit_with_info(self, id: Identifier = None) -> RateLimitInfo:
        """Describe what would happen if an action were attempted now.

        Nothing is recorded. Under concurrent writes from other processes this
        is a best-effort read: another caller may record an action between
        this read and the caller's real attempt.
        """
        current_timestamp = self.now()
        existing_timestamps = await self.get_timestamps(id, 0)
        return self._calculate_info([*existing_timestamps, current_timestamp])

    async def limit(self, id: Identifier = None, count: int = 1) -> bool:
        """Attempt ``count`` actions for ``id``. Return whether they were blocked."""
        return (await self.limit_with_info(id, count)).blocked

    async def would_limit(self, id: Identifier = None) -> bool:
        """Return whether an action for ``id`` would be blocked if attempted now."""
        return (await self.would_limit_with_info(id)).blocked

    async def clear(self, id: Identifier = None) -> None:
        """Forget all recorded actions for ``id``."""
        raise NotImplementedError("clear() is not implemented for this limiter")

    async def get_timestamps(self, id: Identifier, add_count: int) -> List[int]:
        """Return the timestamps inside the window for ``id``, oldest first.

        If ``add_count`` is positive, first records that many new actions at
        the current microsecond and the ones right after it, atomically with
        the read.
        """
        raise NotImplementedError("get_timestamps() is not implemented for this limiter")

    @staticmethod
    def _normalize_id(id: Identifier) -> str:
        return "" if id is None else str(id)

    def _calculate_info(self, timestamps: List[int], new_count: int = 1) -> RateLimitInfo:
        return compute_verdict(
            timestamps,
            new_count=new_count,
            interval=self.config.interval,
            max_in_interval=self.config.max_in_interval,
            min_difference=self.config.min_difference,
        )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(interval={self.config.interval}us, "
            f"max_in_interval={self.config.max_in_interval}, "
            f"min_difference={self.config.min_difference}us)"
        )
