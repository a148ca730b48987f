"""
Overlap arithmetic over half-open time intervals [start, start + duration).

An interval that ends exactly when another begins does not overlap it.
"""

from datetime import datetime, timedelta
from typing import Union

Duration = Union[int, timedelta]


def _as_timedelta(duration: Duration) -> timedelta:
    """Durations are either timedeltas or whole minutes."""
    if isinstance(duration, timedelta):
        return duration
    return timedelta(minutes=duration)


def interval_end(start: datetime, duration: Duration) -> datetime:
    """Exclusive end of the interval starting at `start`."""
    return start + _as_timedelta(duration)


def intervals_overlap(
    start_a: datetime,
    end_a: datetime,
    start_b: datetime,
    end_b: datetime
) -> bool:
    """Check whether [start_a, end_a) and [start_b, end_b) intersect."""
    return start_a < end_b and start_b < end_a


def overlaps(
    start_a: datetime,
    duration_a: Duration,
    start_b: datetime,
    duration_b: Duration
) -> bool:
    """
    Check whether two intervals given as (start, duration) overlap.

    Args:
        start_a: Start of the first interval
        duration_a: Length of the first interval (minutes or timedelta)
        start_b: Start of the second interval
        duration_b: Length of the second interval (minutes or timedelta)

    Returns:
        True iff start_a < end_b and start_b < end_a
    """
    return intervals_overlap(
        start_a, interval_end(start_a, duration_a),
        start_b, interval_end(start_b, duration_b)
    )
