"""Shared test factories for creating domain objects.

Provides make_tick(), make_candle(), make_series() and helpers that turn a
plain price list into ticks or candles, so tests can focus on the values
they care about.
"""

from __future__ import annotations

from collections.abc import Sequence

from ohlcv.sources.types import Candle, CandleSeries, FetchResult, Interval, Tick

# Default timestamp: 2026-02-10 00:00 UTC, aligned to every interval but 1w
DEFAULT_TS = 1_770_681_600_000

# Thursday 2026-02-05 00:00 UTC; week buckets start on Thursdays like the epoch
WEEK_ALIGNED_TS = 1_770_249_600_000


def make_tick(
    *,
    timestamp_ms: int = DEFAULT_TS,
    price: float = 100.0,
    volume: float | None = None,
) -> Tick:
    """Create a Tick with sensible defaults."""
    return Tick(timestamp_ms=timestamp_ms, price=price, volume=volume)


def make_candle(
    *,
    bucket_start_ms: int = DEFAULT_TS,
    open: float = 100.0,
    high: float | None = None,
    low: float | None = None,
    close: float = 100.0,
    volume: float | None = 10.0,
    source_id: str = "fake",
) -> Candle:
    """Create a Candle; high/low default to the open/close envelope."""
    if high is None:
        high = max(open, close)
    if low is None:
        low = min(open, close)
    return Candle(
        bucket_start_ms=bucket_start_ms,
        open=open,
        high=high,
        low=low,
        close=close,
        volume=volume,
        source_id=source_id,
    )


def candles_from_closes(
    closes: Sequence[float],
    *,
    interval: Interval = Interval.D1,
    start_ms: int = DEFAULT_TS,
    source_id: str = "fake",
) -> list[Candle]:
    """One flat candle per close, consecutive buckets of ``interval``."""
    return [
        make_candle(
            bucket_start_ms=start_ms + i * interval.width_ms,
            open=close,
            close=close,
            source_id=source_id,
        )
        for i, close in enumerate(closes)
    ]


def make_series(
    closes: Sequence[float],
    *,
    interval: Interval = Interval.D1,
    start_ms: int = DEFAULT_TS,
    source_id: str = "fake",
) -> CandleSeries:
    """CandleSeries whose closing prices are exactly ``closes``."""
    return CandleSeries.from_candles(
        candles_from_closes(
            closes, interval=interval, start_ms=start_ms, source_id=source_id
        )
    )


def ticks_from_prices(
    prices: Sequence[float],
    *,
    start_ms: int = DEFAULT_TS,
    step_ms: int = 60 * 60 * 1000,
    volume: float | None = None,
) -> list[Tick]:
    """Evenly spaced ticks, one per price."""
    return [
        make_tick(timestamp_ms=start_ms + i * step_ms, price=p, volume=volume)
        for i, p in enumerate(prices)
    ]


def tick_result(
    source_id: str,
    prices: Sequence[float],
    **kwargs: object,
) -> FetchResult:
    """FetchResult carrying hourly ticks for the given prices."""
    return FetchResult.of_ticks(source_id, ticks_from_prices(prices, **kwargs))  # type: ignore[arg-type]


def candle_result(
    source_id: str,
    closes: Sequence[float],
    interval: Interval = Interval.D1,
    start_ms: int = DEFAULT_TS,
) -> FetchResult:
    """FetchResult carrying native candles for the given closes."""
    return FetchResult.of_candles(
        source_id,
        candles_from_closes(
            closes, interval=interval, start_ms=start_ms, source_id=source_id
        ),
        interval,
    )


class FakeClock:
    """Manually advanced millisecond clock for cache freshness tests."""

    def __init__(self, now_ms: int = DEFAULT_TS) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms
