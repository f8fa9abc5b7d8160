"""
Utility functions module.

Time Semantics:
- Notification and history timestamps are integer epoch milliseconds (UTC)
- Session classification only ever looks at the UTC hour
- Naive datetimes are interpreted as UTC
"""
from .time import now_ms, ms_to_datetime, datetime_to_ms, to_utc, utc_hour

__all__ = ["now_ms", "ms_to_datetime", "datetime_to_ms", "to_utc", "utc_hour"]
