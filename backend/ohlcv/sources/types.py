"""Domain types shared across ingestion, aggregation and indicators.

Frozen dataclasses for value objects. Prices and volumes are float
(upstream providers report IEEE doubles); timestamps are epoch milliseconds.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum

from ohlcv.utils.time import MS_PER_DAY, MS_PER_HOUR, MS_PER_WEEK


class Interval(str, Enum):
    """Candle intervals exposed to callers."""

    H1 = "1h"
    H4 = "4h"
    D1 = "1d"
    W1 = "1w"

    @property
    def width_ms(self) -> int:
        return _INTERVAL_WIDTHS[self]


_INTERVAL_WIDTHS: dict[Interval, int] = {
    Interval.H1: MS_PER_HOUR,
    Interval.H4: 4 * MS_PER_HOUR,
    Interval.D1: MS_PER_DAY,
    Interval.W1: MS_PER_WEEK,
}


class Purpose(str, Enum):
    """What the caller intends to do with the data.

    CHART is direct on-screen display; DOWNLOAD re-serves the data
    (exports, files) and needs redistribution rights.
    """

    CHART = "chart"
    DOWNLOAD = "download"


class VolumeMode(str, Enum):
    """How tick volumes combine inside one bucket."""

    SUM = "sum"  # ticks carry volume deltas
    SNAPSHOT = "snapshot"  # ticks carry a running total; keep the latest


class FetchKind(str, Enum):
    """Shape of a provider response."""

    TICKS = "ticks"
    CANDLES = "candles"


# --- Value Objects (frozen) ---


@dataclass(frozen=True)
class Tick:
    """Single timestamped price observation."""

    timestamp_ms: int
    price: float
    volume: float | None = None


@dataclass(frozen=True)
class VolumeSample:
    """Volume reading reported on its own clock, apart from the price ticks."""

    timestamp_ms: int
    volume: float


@dataclass(frozen=True)
class Candle:
    """OHLCV summary of one fixed-width bucket."""

    bucket_start_ms: int
    open: float
    high: float
    low: float
    close: float
    volume: float | None
    source_id: str

    def __post_init__(self) -> None:
        if self.low > self.high:
            raise ValueError(
                f"Candle low {self.low} above high {self.high} "
                f"at {self.bucket_start_ms}"
            )
        if self.low > min(self.open, self.close):
            raise ValueError(
                f"Candle low {self.low} above open/close at {self.bucket_start_ms}"
            )
        if self.high < max(self.open, self.close):
            raise ValueError(
                f"Candle high {self.high} below open/close at {self.bucket_start_ms}"
            )


@dataclass(frozen=True)
class CandleSeries:
    """Candles ordered by strictly increasing bucket start. Gaps allowed."""

    candles: tuple[Candle, ...] = ()

    def __post_init__(self) -> None:
        for prev, cur in zip(self.candles, self.candles[1:]):
            if cur.bucket_start_ms <= prev.bucket_start_ms:
                raise ValueError(
                    "CandleSeries must be strictly increasing: "
                    f"{cur.bucket_start_ms} follows {prev.bucket_start_ms}"
                )

    @classmethod
    def from_candles(cls, candles: Iterable[Candle]) -> CandleSeries:
        return cls(tuple(candles))

    def __len__(self) -> int:
        return len(self.candles)

    def __iter__(self) -> Iterator[Candle]:
        return iter(self.candles)

    def __getitem__(self, index: int) -> Candle:
        return self.candles[index]

    def closes(self) -> list[float]:
        """Closing prices, oldest first."""
        return [c.close for c in self.candles]

    @property
    def last(self) -> Candle | None:
        return self.candles[-1] if self.candles else None

    def is_aligned(self, width_ms: int) -> bool:
        """True when every bucket start is an exact multiple of width_ms."""
        return all(c.bucket_start_ms % width_ms == 0 for c in self.candles)


@dataclass(frozen=True)
class FetchResult:
    """Raw provider output: either loose ticks or native candles, never both.

    Tick results may carry volume samples separately from the ticks when the
    upstream reports volume on a different clock than prices.
    """

    source_id: str
    kind: FetchKind
    ticks: tuple[Tick, ...] = ()
    candles: tuple[Candle, ...] = ()
    native_interval: Interval | None = None
    volume_mode: VolumeMode = VolumeMode.SUM
    volumes: tuple[VolumeSample, ...] = ()

    @classmethod
    def of_ticks(
        cls,
        source_id: str,
        ticks: Iterable[Tick],
        volume_mode: VolumeMode = VolumeMode.SUM,
        volumes: Iterable[VolumeSample] = (),
    ) -> FetchResult:
        return cls(
            source_id=source_id,
            kind=FetchKind.TICKS,
            ticks=tuple(ticks),
            volume_mode=volume_mode,
            volumes=tuple(volumes),
        )

    @classmethod
    def of_candles(
        cls,
        source_id: str,
        candles: Iterable[Candle],
        native_interval: Interval,
    ) -> FetchResult:
        return cls(
            source_id=source_id,
            kind=FetchKind.CANDLES,
            candles=tuple(candles),
            native_interval=native_interval,
        )

    @property
    def is_empty(self) -> bool:
        if self.kind is FetchKind.TICKS:
            return not self.ticks
        return not self.candles


@dataclass(frozen=True)
class ResolveResult:
    """Outcome of one resolve call.

    source_id is always attached so every payload is auditable against
    the policy that admitted it.
    """

    series: CandleSeries
    source_id: str
    is_stale: bool
    fetched_at_ms: int
    attribution: str | None = None
    tried: tuple[str, ...] = field(default=())
