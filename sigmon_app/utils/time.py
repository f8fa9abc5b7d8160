"""
Time helpers for epoch-millisecond history and UTC session bucketing.
"""

import time
from datetime import datetime, timezone
from typing import Optional, Union


Timestamp = Union[datetime, int, float]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def ms_to_datetime(timestamp_ms: Union[int, float]) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)


def datetime_to_ms(value: datetime) -> int:
    """Convert a datetime to epoch milliseconds, treating naive values as UTC."""
    return int(to_utc(value).timestamp() * 1000)


def to_utc(value: Optional[Timestamp] = None) -> datetime:
    """
    Normalize a timestamp to an aware UTC datetime.

    Args:
        value: datetime (naive means UTC), epoch milliseconds, or None for now

    Returns:
        Aware UTC datetime
    """
    if value is None:
        return datetime.now(timezone.utc)

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    return ms_to_datetime(value)


def utc_hour(value: Optional[Timestamp] = None) -> int:
    """UTC hour of day (0-23) for the given timestamp."""
    return to_utc(value).hour


def format_ms(timestamp_ms: Union[int, float]) -> str:
    """ISO8601 rendering of an epoch-millisecond timestamp."""
    return ms_to_datetime(timestamp_ms).isoformat()
