"""Candle bucketing from loose ticks to fixed-width OHLCV candles.

Pull-based: call bucket() with the full tick list, get a CandleSeries back.
Each tick lands in bucket floor(ts / width) * width. Buckets are emitted in
ascending order; empty buckets are not interpolated.

Precondition: ticks should be in chronological order. Close is the
last-processed tick of its bucket, so out-of-order input gives a
well-formed but meaningless close. This is not checked.

Only raw ticks may be re-bucketed. OHLC built from a candle's close stream
is not true OHLC, so passing Candle objects is rejected outright.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from ohlcv.sources.types import (
    Candle,
    CandleSeries,
    Interval,
    Tick,
    VolumeMode,
    VolumeSample,
)
from ohlcv.utils.time import floor_to_width


@dataclass(slots=True)
class _Bucket:
    """In-progress candle state. Discarded once the series is built."""

    open: float
    high: float
    low: float
    close: float
    volume: float | None


class CandleBucketer:
    """Groups ticks into fixed-width candles.

    Volume handling depends on what the upstream reports:
    - VolumeMode.SUM: ticks carry trade volume deltas; buckets sum them.
    - VolumeMode.SNAPSHOT: ticks carry a running figure; a bucket keeps the
      most recent non-null sample.
    Ticks with volume=None contribute nothing; a bucket with no volume
    samples at all gets volume=None.

    Upstreams that report volume on its own clock pass VolumeSamples
    separately. Each sample lands in its own bucket and is merged after that
    bucket's ticks, in chronological order. Samples for buckets without a
    price tick are dropped.
    """

    def __init__(
        self,
        width_ms: int,
        source_id: str,
        volume_mode: VolumeMode = VolumeMode.SUM,
    ) -> None:
        if width_ms <= 0:
            raise ValueError(f"width_ms must be > 0, got {width_ms}")
        self.width_ms = width_ms
        self.source_id = source_id
        self.volume_mode = volume_mode

    @classmethod
    def for_interval(
        cls,
        interval: Interval,
        source_id: str,
        volume_mode: VolumeMode = VolumeMode.SUM,
    ) -> CandleBucketer:
        return cls(interval.width_ms, source_id, volume_mode)

    def bucket(
        self,
        ticks: Iterable[Tick],
        volumes: Iterable[VolumeSample] = (),
    ) -> CandleSeries:
        """Aggregate ticks into a CandleSeries. Empty input gives an empty series."""
        buckets: dict[int, _Bucket] = {}

        for tick in ticks:
            if not isinstance(tick, Tick):
                raise TypeError(
                    "CandleBucketer only accepts raw ticks, "
                    f"got {type(tick).__name__}"
                )
            start = floor_to_width(tick.timestamp_ms, self.width_ms)
            current = buckets.get(start)
            if current is None:
                buckets[start] = _Bucket(
                    open=tick.price,
                    high=tick.price,
                    low=tick.price,
                    close=tick.price,
                    volume=tick.volume,
                )
                continue

            current.high = max(current.high, tick.price)
            current.low = min(current.low, tick.price)
            current.close = tick.price
            current.volume = self._merge_volume(current.volume, tick.volume)

        for sample in sorted(volumes, key=lambda s: s.timestamp_ms):
            target = buckets.get(floor_to_width(sample.timestamp_ms, self.width_ms))
            if target is not None:
                target.volume = self._merge_volume(target.volume, sample.volume)

        return CandleSeries(
            tuple(
                Candle(
                    bucket_start_ms=start,
                    open=b.open,
                    high=b.high,
                    low=b.low,
                    close=b.close,
                    volume=b.volume,
                    source_id=self.source_id,
                )
                for start, b in sorted(buckets.items())
            )
        )

    def _merge_volume(
        self,
        current: float | None,
        incoming: float | None,
    ) -> float | None:
        if incoming is None:
            return current
        if self.volume_mode is VolumeMode.SNAPSHOT or current is None:
            return incoming
        return current + incoming
