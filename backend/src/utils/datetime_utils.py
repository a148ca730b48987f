"""
Datetime utilities for consistent timezone handling across the application.

All timestamps are stored as naive datetimes interpreted as UTC. Incoming
timezone-aware values are converted to UTC and stripped of tzinfo before
they reach the services, so comparisons never mix naive and aware values.
"""

from datetime import datetime, timezone, time
from typing import Optional


def utc_now() -> datetime:
    """
    Get the current time as a naive UTC datetime.

    Returns:
        Current UTC datetime without tzinfo, matching how timestamps are stored
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def ensure_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to naive UTC.

    Naive inputs are assumed to already be UTC.

    Args:
        dt: Datetime to normalize

    Returns:
        Naive UTC datetime, or None if input is None
    """
    if dt is None:
        return None
    return to_naive_utc(dt)


def to_naive_utc(dt: datetime) -> datetime:
    """Convert a datetime to naive UTC; naive inputs are assumed to already be UTC."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_hhmm(value: str) -> time:
    """
    Parse a "HH:MM" string (24h) into a time.

    Raises:
        ValueError: If the string is not a valid HH:MM time
    """
    try:
        hour_str, minute_str = value.strip().split(':')
        return time(int(hour_str), int(minute_str))
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid time format (expected HH:MM): {value}") from e
