"""Shared test fixtures for the OHLCV engine."""

from __future__ import annotations

import os

import pytest

from ohlcv.cache.result_cache import ResultCache, TTLTable
from ohlcv.sources.policy import PolicyEntry, SourcePolicy
from ohlcv.sources.types import Interval, Purpose
from tests.factories import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> ResultCache:
    return ResultCache(clock=clock)


@pytest.fixture
def ttl_table() -> TTLTable:
    """60s for every interval, so tests can expire entries with one advance."""
    return TTLTable(
        {"intraday": 60, "daily": 60},
        {
            Interval.H1: "intraday",
            Interval.H4: "intraday",
            Interval.D1: "daily",
            Interval.W1: "daily",
        },
    )


@pytest.fixture
def policy() -> SourcePolicy:
    """primary: licensed for everything; backup: chart only; unlisted: absent."""
    return SourcePolicy(
        [
            PolicyEntry(
                source_id="primary",
                allow_display=True,
                allow_redistribution=True,
                allowed_purposes=frozenset({Purpose.CHART, Purpose.DOWNLOAD}),
                attribution="Primary Data",
            ),
            PolicyEntry(
                source_id="backup",
                allow_display=True,
                allow_redistribution=False,
                allowed_purposes=frozenset({Purpose.CHART}),
                attribution="Backup Data",
            ),
        ]
    )


@pytest.fixture
def live_providers() -> None:
    """Skip unless live provider tests were requested.

    Set OHLCV_LIVE_TESTS=1 to run tests that call the public APIs.
    """
    if os.environ.get("OHLCV_LIVE_TESTS", "") != "1":
        pytest.skip("Live provider tests disabled. Set OHLCV_LIVE_TESTS=1.")
