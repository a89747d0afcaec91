"""Time units and conversions for the rate limiter.

Callers configure limiters in milliseconds; the rolling window is tracked in
microseconds so that bursts of actions inside one millisecond keep distinct,
ordered timestamps. Redis TTLs are whole seconds. Each unit gets its own
``NewType`` and crossing between them goes through the functions below.
"""

import hashlib
import math
import time
from typing import NewType, Union

Microseconds = NewType("Microseconds", int)
Milliseconds = NewType("Milliseconds", int)
Seconds = NewType("Seconds", int)


def get_current_microseconds() -> Microseconds:
    """Return the current wall-clock time in whole microseconds.

    Wall-clock time (not ``time.monotonic``) is used because timestamps are
    shared between processes through Redis.
    """
    return Microseconds(time.time_ns() // 1000)


def milliseconds_to_microseconds(milliseconds: Union[int, float]) -> Microseconds:
    """Convert a millisecond duration to microseconds.

    Fractional milliseconds are accepted and rounded to the nearest
    microsecond.

    Examples:
        >>> milliseconds_to_microseconds(10)
        10000
        >>> milliseconds_to_microseconds(0.5)
        500
    """
    return Microseconds(int(round(milliseconds * 1000)))


def microseconds_to_milliseconds(microseconds: int) -> Milliseconds:
    """Convert microseconds to milliseconds, rounding up.

    Rounding up means a caller told to wait N milliseconds is never early.

    Examples:
        >>> microseconds_to_milliseconds(5000)
        5
        >>> microseconds_to_milliseconds(5001)
        6
    """
    return Milliseconds(math.ceil(microseconds / 1000))


def microseconds_to_seconds(microseconds: int) -> Seconds:
    """Convert microseconds to whole seconds, rounding up.

    Used for Redis ``EXPIRE``, which only accepts whole seconds.

    Examples:
        >>> microseconds_to_seconds(10_000)
        1
        >>> microseconds_to_seconds(2_000_000)
        2
    """
    return Seconds(math.ceil(microseconds / 1_000_000))


def hash_identifier(identifier: str) -> str:
    """Hash an identifier for logging without exposing user ids or IPs."""
    return hashlib.sha256(identifier.encode()).hexdigest()[:16]
