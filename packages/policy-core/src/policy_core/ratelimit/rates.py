"""Conversion of policy rates to limiter (max_value, seconds) pairs."""

import logging

from policy_core.policies.ratelimit import Rate

logger = logging.getLogger(__name__)

UNIT_SECONDS: dict[str, int] = {
    "second": 1,
    "minute": 60,
    "hour": 3600,
    "day": 86400,
}


def rate_to_seconds(rate: Rate) -> tuple[int, int]:
    """
    Convert a rate to (max_value, seconds).

    Negative limits and durations are normalized to zero. An unknown unit
    yields a zero-second window; the limiter treats such counters as
    inactive, so the limit fails open.

    Example:
        rate_to_seconds(Rate(limit=5, duration=10, unit="second")) -> (5, 10)
        rate_to_seconds(Rate(limit=1, duration=2, unit="hour"))    -> (1, 7200)
    """
    max_value = max(rate.limit, 0)
    unit_seconds = UNIT_SECONDS.get(rate.unit)
    if unit_seconds is None:
        logger.warning(f"Unknown rate unit '{rate.unit}', using a zero-second window")
        unit_seconds = 0
    seconds = unit_seconds * rate.duration if rate.duration > 0 else 0
    return max_value, seconds
