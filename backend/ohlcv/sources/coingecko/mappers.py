"""CoinGecko market_chart payload to Tick and VolumeSample converters.

market_chart returns parallel ``[timestamp_ms, value]`` arrays for prices and
total_volumes. total_volumes is a rolling 24h figure, i.e. a snapshot rather
than a per-sample delta, so ticks from here are bucketed with
VolumeMode.SNAPSHOT. The two arrays are not sampled on the same clock, so
volumes travel as separate VolumeSamples and meet the prices by bucket.
"""

from __future__ import annotations

from typing import Any

from ohlcv.sources.errors import ProviderResponseError
from ohlcv.sources.types import Tick, VolumeSample
from ohlcv.sources.utils import to_float

SOURCE_ID = "coingecko"


def _pairs(payload: dict[str, Any], field: str) -> list[tuple[int, float]]:
    raw = payload.get(field)
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ProviderResponseError(SOURCE_ID, f"{field} is not a list")
    pairs: list[tuple[int, float]] = []
    for point in raw:
        if not isinstance(point, list) or len(point) < 2:
            raise ProviderResponseError(SOURCE_ID, f"malformed {field} point {point!r}")
        if point[1] is None:
            continue
        try:
            pairs.append((int(point[0]), to_float(point[1])))
        except (TypeError, ValueError) as e:
            raise ProviderResponseError(
                SOURCE_ID, f"bad {field} point {point!r}: {e}"
            ) from e
    return pairs


def market_chart_to_ticks(payload: Any) -> list[Tick]:
    """Price points as volume-less ticks, oldest first."""
    if not isinstance(payload, dict) or "prices" not in payload:
        raise ProviderResponseError(SOURCE_ID, "market_chart payload has no prices")

    ticks = [Tick(timestamp_ms=ts, price=price) for ts, price in _pairs(payload, "prices")]
    # Chronological order is the bucketer's precondition for close
    ticks.sort(key=lambda t: t.timestamp_ms)
    return ticks


def market_chart_to_volumes(payload: Any) -> list[VolumeSample]:
    """total_volumes points, oldest first. A missing array gives no samples."""
    if not isinstance(payload, dict):
        raise ProviderResponseError(SOURCE_ID, "market_chart payload is not an object")
    samples = [
        VolumeSample(timestamp_ms=ts, volume=volume)
        for ts, volume in _pairs(payload, "total_volumes")
    ]
    samples.sort(key=lambda s: s.timestamp_ms)
    return samples
