"""Data models for rolling-window rate limiting."""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from rolling_limiter.core.utils import (
    Microseconds,
    Milliseconds,
    milliseconds_to_microseconds,
)
from rolling_limiter.exceptions import ConfigurationError


@dataclass(frozen=True)
class RateLimiterConfig:
    """Validated limiter configuration, stored in microseconds.

    Attributes:
        interval: Width of the rolling window
        max_in_interval: Maximum actions allowed inside any window
        min_difference: Minimum spacing between consecutive actions (0 disables)
    """
    interval: Microseconds
    max_in_interval: int
    min_difference: Microseconds = Microseconds(0)

    def __post_init__(self) -> None:
        if self.interval is None or self.interval <= 0:
            raise ConfigurationError(
                "Must pass a positive integer for `interval`", option="interval"
            )
        if (
            self.max_in_interval is None
            or isinstance(self.max_in_interval, bool)
            or not isinstance(self.max_in_interval, int)
            or self.max_in_interval <= 0
        ):
            raise ConfigurationError(
                "Must pass a positive integer for `max_in_interval`",
                option="max_in_interval",
            )
        if self.min_difference is None or self.min_difference < 0:
            raise ConfigurationError(
                "`min_difference` cannot be negative", option="min_difference"
            )

    @classmethod
    def from_milliseconds(
        cls,
        interval: Union[int, float],
        max_in_interval: int,
        min_difference: Optional[Union[int, float]] = 0,
    ) -> "RateLimiterConfig":
        """Build a config from the public millisecond values.

        Validation runs on the raw values first so a missing option is
        reported as such instead of failing inside a unit conversion.
        """
        if interval is None or interval <= 0:
            raise ConfigurationError(
                "Must pass a positive integer for `interval`", option="interval"
            )
        if min_difference is None:
            min_difference = 0
        if min_difference < 0:
            raise ConfigurationError(
                "`min_difference` cannot be negative", option="min_difference"
            )
        return cls(
            interval=milliseconds_to_microseconds(interval),
            max_in_interval=max_in_interval,
            min_difference=milliseconds_to_microseconds(min_difference),
        )


@dataclass(frozen=True)
class RateLimitInfo:
    """Verdict for one attempted (or hypothetical) action.

    Never stored; computed from a snapshot of the identifier's history.
    """
    blocked: bool
    blocked_due_to_count: bool
    blocked_due_to_min_difference: bool
    milliseconds_until_allowed: Milliseconds
    actions_remaining: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase shape used in HTTP responses and headers."""
        return {
            "blocked": self.blocked,
            "blockedDueToCount": self.blocked_due_to_count,
            "blockedDueToMinDifference": self.blocked_due_to_min_difference,
            "millisecondsUntilAllowed": self.milliseconds_until_allowed,
            "actionsRemaining": self.actions_remaining,
        }
