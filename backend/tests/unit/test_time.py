"""Tests for epoch-millisecond UTC helpers."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from ohlcv.utils.time import (
    MS_PER_DAY,
    MS_PER_HOUR,
    MS_PER_WEEK,
    datetime_to_ms,
    floor_to_width,
    format_timestamp,
    ms_to_datetime,
    parse_timestamp,
    utc_now_ms,
)


class TestUtcHelpers:
    """Test UTC time helpers."""

    def test_utc_now_ms_is_current(self) -> None:
        now = datetime.now(UTC).timestamp() * 1000
        assert abs(utc_now_ms() - now) < 5_000

    def test_ms_to_datetime_is_utc(self) -> None:
        dt = ms_to_datetime(0)
        assert dt == datetime(1970, 1, 1, tzinfo=UTC)
        assert dt.tzinfo == UTC

    def test_naive_datetime_treated_as_utc(self) -> None:
        assert datetime_to_ms(datetime(1970, 1, 2)) == MS_PER_DAY

    def test_format_timestamp_z_suffix(self) -> None:
        ms = datetime_to_ms(datetime(2026, 2, 14, 12, 30, 45, 123000, tzinfo=UTC))
        assert format_timestamp(ms) == "2026-02-14T12:30:45.123Z"

    def test_parse_timestamp_roundtrip(self) -> None:
        ms = 1_771_072_245_123
        assert parse_timestamp(format_timestamp(ms)) == ms


class TestFloorToWidth:
    """Test bucket start computation."""

    def test_floors_within_bucket(self) -> None:
        assert floor_to_width(1_800_000, MS_PER_HOUR) == 0

    def test_boundary_starts_new_bucket(self) -> None:
        assert floor_to_width(MS_PER_HOUR, MS_PER_HOUR) == MS_PER_HOUR

    def test_weeks_align_to_epoch(self) -> None:
        """1970-01-01 was a Thursday, so week buckets start on Thursdays."""
        monday = datetime_to_ms(datetime(2026, 2, 9, tzinfo=UTC))
        start = floor_to_width(monday, MS_PER_WEEK)
        assert ms_to_datetime(start).weekday() == 3

    def test_rejects_non_positive_width(self) -> None:
        with pytest.raises(ValueError, match="width_ms"):
            floor_to_width(1, 0)
