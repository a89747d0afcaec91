"""Rolling-window decision logic.

Pure computation shared by every backend: given the retained timestamps of
an identifier with the candidate action's timestamp appended last, decide
whether the candidate is blocked and how long until the next action would be
allowed. All durations here are microseconds.
"""

from typing import Sequence

from rolling_limiter.core.utils import microseconds_to_milliseconds
from rolling_limiter.rate_limit.models import RateLimitInfo


def compute_verdict(
    timestamps: Sequence[int],
    *,
    interval: int,
    max_in_interval: int,
    min_difference: int = 0,
    new_count: int = 1,
) -> RateLimitInfo:
    """Compute the verdict for the last timestamp in ``timestamps``.

    Args:
        timestamps: Chronologically ordered timestamps inside the window, the
            candidate action last
        interval: Rolling window width
        max_in_interval: Maximum actions allowed inside the window
        min_difference: Minimum spacing between consecutive actions, 0 disables
        new_count: How many trailing timestamps belong to the current attempt.
            Spacing is only checked between the last earlier action and the
            first of these; a bulk attempt is not checked against itself.

    Returns:
        RateLimitInfo for the candidate action

    Raises:
        ValueError: If ``timestamps`` is empty
    """
    num_timestamps = len(timestamps)
    if num_timestamps == 0:
        raise ValueError("timestamps must include the candidate action")

    current = timestamps[-1]
    new_count = min(max(1, new_count), num_timestamps)
    first_new = timestamps[num_timestamps - new_count]
    previous = (
        timestamps[num_timestamps - new_count - 1]
        if num_timestamps > new_count
        else None
    )

    blocked_due_to_count = num_timestamps > max_in_interval
    # Clock skew between processes can put an action before its predecessor, so the
    # feature flag is checked on its own.
    blocked_due_to_min_difference = (
        previous is not None
        and min_difference > 0
        and first_new - previous < min_difference
    )
    blocked = blocked_due_to_count or blocked_due_to_min_difference

    # Once the window is full, the next action waits for the oldest counted
    # action to age out.
    if num_timestamps >= max_in_interval:
        oldest_counted = timestamps[max(0, num_timestamps - max_in_interval)]
        until_window_clears = oldest_counted + interval - current
    else:
        until_window_clears = 0

    microseconds_until_allowed = max(min_difference, until_window_clears, 0)

    return RateLimitInfo(
        blocked=blocked,
        blocked_due_to_count=blocked_due_to_count,
        blocked_due_to_min_difference=blocked_due_to_min_difference,
        milliseconds_until_allowed=microseconds_to_milliseconds(microseconds_until_allowed),
        actions_remaining=max(0, max_in_interval - num_timestamps),
    )
