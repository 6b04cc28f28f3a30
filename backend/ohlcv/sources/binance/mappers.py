"""Binance REST payload to domain type converters.

Kline rows are positional arrays:
[open_time, open, high, low, close, volume, close_time, quote_volume, ...]
with numeric fields as strings. All string-to-float conversion happens here.
"""

from __future__ import annotations

from typing import Any

from ohlcv.sources.errors import ProviderResponseError
from ohlcv.sources.types import Candle
from ohlcv.sources.utils import to_float

SOURCE_ID = "binance"

_KLINE_MIN_FIELDS = 6


def kline_to_candle(row: Any, width_ms: int) -> Candle:
    """Convert one kline row into a Candle aligned to width_ms."""
    if not isinstance(row, list) or len(row) < _KLINE_MIN_FIELDS:
        raise ProviderResponseError(SOURCE_ID, f"malformed kline row: {row!r}")
    try:
        bucket_start = int(row[0])
        candle = Candle(
            bucket_start_ms=bucket_start,
            open=to_float(row[1]),
            high=to_float(row[2]),
            low=to_float(row[3]),
            close=to_float(row[4]),
            volume=to_float(row[5]),
            source_id=SOURCE_ID,
        )
    except (TypeError, ValueError) as e:
        raise ProviderResponseError(SOURCE_ID, f"bad kline row {row!r}: {e}") from e

    if bucket_start % width_ms != 0:
        raise ProviderResponseError(
            SOURCE_ID,
            f"kline open time {bucket_start} is not aligned to {width_ms} ms",
        )
    return candle


def klines_to_candles(payload: Any, width_ms: int) -> list[Candle]:
    """Convert a klines response body into candles, oldest first.

    Binance returns rows in ascending open time; duplicates are rejected
    so the result can back a CandleSeries directly.
    """
    if not isinstance(payload, list):
        raise ProviderResponseError(
            SOURCE_ID, f"expected a list of klines, got {type(payload).__name__}"
        )
    candles = [kline_to_candle(row, width_ms) for row in payload]
    candles.sort(key=lambda c: c.bucket_start_ms)
    for prev, cur in zip(candles, candles[1:]):
        if cur.bucket_start_ms == prev.bucket_start_ms:
            raise ProviderResponseError(
                SOURCE_ID, f"duplicate kline at {cur.bucket_start_ms}"
            )
    return candles
