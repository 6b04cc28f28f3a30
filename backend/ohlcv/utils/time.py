"""UTC helpers for epoch-millisecond timestamps.

All engine timestamps are integer milliseconds since the Unix epoch (UTC).
Datetimes only appear at the edges (CLI output, log lines).
"""

from __future__ import annotations

import time
from datetime import UTC, datetime, timedelta

MS_PER_SECOND = 1_000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR
MS_PER_WEEK = 7 * MS_PER_DAY

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MS = timedelta(milliseconds=1)


def utc_now_ms() -> int:
    """Return the current UTC time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def floor_to_width(timestamp_ms: int, width_ms: int) -> int:
    """Floor a timestamp to the start of its fixed-width bucket."""
    if width_ms <= 0:
        raise ValueError(f"width_ms must be > 0, got {width_ms}")
    return (timestamp_ms // width_ms) * width_ms


def ms_to_datetime(timestamp_ms: int) -> datetime:
    """Convert epoch milliseconds to a timezone-aware UTC datetime."""
    return _EPOCH + timestamp_ms * _ONE_MS


def datetime_to_ms(dt: datetime) -> int:
    """Convert a datetime to epoch milliseconds. Naive datetimes are UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return (dt - _EPOCH) // _ONE_MS


def format_timestamp(timestamp_ms: int) -> str:
    """Format epoch milliseconds as ISO 8601 with millisecond precision.

    Output format: YYYY-MM-DDTHH:MM:SS.fffZ
    """
    dt = ms_to_datetime(timestamp_ms)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_timestamp(s: str) -> int:
    """Parse an ISO 8601 timestamp with Z suffix back to epoch milliseconds."""
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return datetime_to_ms(datetime.fromisoformat(s))
