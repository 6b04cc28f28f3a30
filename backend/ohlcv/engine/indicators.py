"""Indicator calculation over a closing-price series.

Pure functions take closes ordered oldest -> newest and return the latest
value. IndicatorEngine applies them to a CandleSeries and stamps the
result with the window and the last bucket start.

Numeric conventions kept on purpose:
- EMA is seeded with the first close and recursed across the whole series,
  so its value depends on how much history was fetched.
- MACD is EMA(12) - EMA(26) with that same EMA. No signal line.
- RSI averages the last N gains and losses with a simple mean, not Wilder
  smoothing.
- Bollinger stddev is the population stddev (divide by N).

Williams %R and CCI read highs and lows, so they take candles rather than
closes. signal_for() turns any result into a buy/sell/neutral reading
against the latest close, and summarize() tallies a panel of them.
Every function raises InsufficientDataError instead of returning None or
clamping when the series is too short.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable, Sequence, Sized
from dataclasses import dataclass
from enum import Enum

from ohlcv.sources.errors import InsufficientDataError
from ohlcv.sources.types import Candle, CandleSeries

RSI_OVERBOUGHT = 70.0
RSI_OVERSOLD = 30.0
WILLIAMS_R_OVERBOUGHT = -20.0
WILLIAMS_R_OVERSOLD = -80.0
CCI_OVERBOUGHT = 100.0
CCI_OVERSOLD = -100.0
_CCI_SCALE = 0.015


class IndicatorKind(str, Enum):
    """Indicators the engine can compute."""

    RSI = "rsi"
    SMA = "sma"
    EMA = "ema"
    MACD = "macd"
    BB = "bb"
    WILLIAMS_R = "williams_r"
    CCI = "cci"


class Signal(str, Enum):
    """Trading reading of one indicator."""

    BUY = "buy"
    SELL = "sell"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class BollingerBands:
    """Band envelope around the rolling mean."""

    upper: float
    middle: float
    lower: float
    stddev: float

    @property
    def width_pct(self) -> float | None:
        """Band width as a percent of the middle band. None when middle is 0."""
        if self.middle == 0:
            return None
        return (self.upper - self.lower) / self.middle * 100

    def position(self, price: float) -> str:
        """Where a price sits relative to the bands."""
        if price > self.upper:
            return "above_upper"
        if price < self.lower:
            return "below_lower"
        if price > self.middle + self.stddev:
            return "upper_half"
        if price < self.middle - self.stddev:
            return "lower_half"
        return "middle"


@dataclass(frozen=True)
class IndicatorResult:
    """One computed indicator value.

    value is a float for every kind except BB, which carries BollingerBands.
    as_of is the bucket start of the newest candle used.
    """

    kind: IndicatorKind
    value: float | BollingerBands
    window: int
    as_of: int


@dataclass(frozen=True)
class InsufficientData:
    """Explicit not-enough-history signal, distinct from a zero result."""

    kind: IndicatorKind
    window: int
    required: int
    actual: int


def _check_period(name: str, period: int) -> None:
    if period < 1:
        raise ValueError(f"{name} period must be >= 1, got {period}")


def _require(indicator: str, samples: Sized, required: int) -> None:
    if len(samples) < required:
        raise InsufficientDataError(indicator, required, len(samples))


def sma(prices: Sequence[float], period: int) -> float:
    """Arithmetic mean of the last ``period`` closes."""
    _check_period("SMA", period)
    _require(f"SMA({period})", prices, period)
    return math.fsum(prices[-period:]) / period


def ema(prices: Sequence[float], period: int) -> float:
    """Exponential moving average over the entire series.

    Seeded with prices[0]; k = 2 / (period + 1). A one-point series
    returns that point for any period.
    """
    _check_period("EMA", period)
    _require(f"EMA({period})", prices, 1)
    k = 2 / (period + 1)
    value = prices[0]
    for price in prices[1:]:
        value = (price - value) * k + value
    return value


def rsi(prices: Sequence[float], period: int = 14) -> float:
    """Relative Strength Index over the last ``period`` deltas.

    Simple averages of gains and losses. avg_loss == 0 gives 100.
    """
    _check_period("RSI", period)
    _require(f"RSI({period})", prices, period + 1)

    window = prices[-(period + 1):]
    gains = 0.0
    losses = 0.0
    for prev, cur in zip(window, window[1:]):
        change = cur - prev
        if change > 0:
            gains += change
        else:
            losses -= change

    avg_gain = gains / period
    avg_loss = losses / period
    if avg_loss == 0:
        return 100.0
    return 100 - 100 / (1 + avg_gain / avg_loss)


def macd(prices: Sequence[float], fast: int = 12, slow: int = 26) -> float:
    """EMA(fast) - EMA(slow), both over the full series."""
    _check_period("MACD fast", fast)
    _check_period("MACD slow", slow)
    if fast >= slow:
        raise ValueError(f"MACD fast period {fast} must be < slow period {slow}")
    _require(f"MACD({fast},{slow})", prices, slow)
    return ema(prices, fast) - ema(prices, slow)


def bollinger(
    prices: Sequence[float],
    period: int = 20,
    num_std: float = 2.0,
) -> BollingerBands:
    """Mean of the last ``period`` closes +/- num_std population stddevs."""
    _check_period("Bollinger Bands", period)
    _require("Bollinger Bands", prices, period)

    window = prices[-period:]
    mean = math.fsum(window) / period
    variance = math.fsum((p - mean) ** 2 for p in window) / period
    sd = math.sqrt(variance)
    return BollingerBands(
        upper=mean + num_std * sd,
        middle=mean,
        lower=mean - num_std * sd,
        stddev=sd,
    )


def williams_r(candles: Sequence[Candle], period: int = 14) -> float:
    """Williams %R of the newest close within the last ``period`` candles.

    Ranges from -100 (close at the lowest low) to 0 (at the highest high).
    A flat range gives -50.
    """
    _check_period("Williams %R", period)
    _require(f"Williams %R({period})", candles, period)

    recent = candles[-period:]
    highest = max(c.high for c in recent)
    lowest = min(c.low for c in recent)
    if highest == lowest:
        return -50.0
    return (highest - recent[-1].close) / (highest - lowest) * -100


def cci(candles: Sequence[Candle], period: int = 20) -> float:
    """Commodity Channel Index of the newest typical price (H + L + C) / 3.

    Zero mean deviation gives 0.
    """
    _check_period("CCI", period)
    _require(f"CCI({period})", candles, period)

    typical = [(c.high + c.low + c.close) / 3 for c in candles[-period:]]
    mean = math.fsum(typical) / period
    mean_deviation = math.fsum(abs(p - mean) for p in typical) / period
    if mean_deviation == 0:
        return 0.0
    return (typical[-1] - mean) / (_CCI_SCALE * mean_deviation)


def rsi_zone(value: float) -> str:
    """Classify an RSI reading."""
    if value > RSI_OVERBOUGHT:
        return "overbought"
    if value < RSI_OVERSOLD:
        return "oversold"
    return "neutral"


def _band_signal(value: float, oversold: float, overbought: float) -> Signal:
    if value > overbought:
        return Signal.SELL
    if value < oversold:
        return Signal.BUY
    return Signal.NEUTRAL


def _sign_signal(delta: float) -> Signal:
    if delta > 0:
        return Signal.BUY
    if delta < 0:
        return Signal.SELL
    return Signal.NEUTRAL


def signal_for(result: IndicatorResult, price: float) -> Signal:
    """Buy/sell/neutral reading of one result against the latest close.

    Oscillators (RSI, Williams %R, CCI) sell when overbought and buy when
    oversold. SMA and EMA compare the price with the average, MACD reads
    its sign, and Bollinger Bands buy in the lower half and sell in the
    upper half.
    """
    value = result.value
    if isinstance(value, BollingerBands):
        position = value.position(price)
        if position in ("below_lower", "lower_half"):
            return Signal.BUY
        if position in ("above_upper", "upper_half"):
            return Signal.SELL
        return Signal.NEUTRAL

    if result.kind is IndicatorKind.RSI:
        return _band_signal(value, RSI_OVERSOLD, RSI_OVERBOUGHT)
    if result.kind is IndicatorKind.WILLIAMS_R:
        return _band_signal(value, WILLIAMS_R_OVERSOLD, WILLIAMS_R_OVERBOUGHT)
    if result.kind is IndicatorKind.CCI:
        return _band_signal(value, CCI_OVERSOLD, CCI_OVERBOUGHT)
    if result.kind is IndicatorKind.MACD:
        return _sign_signal(value)
    return _sign_signal(price - value)


@dataclass(frozen=True)
class SignalSummary:
    """Signal tally for a panel of indicators."""

    buy: int
    sell: int
    neutral: int

    @property
    def overall(self) -> str:
        # A margin of more than two signals makes the call "strong"
        if self.buy > self.sell + 2:
            return "strong_buy"
        if self.buy > self.sell:
            return "buy"
        if self.sell > self.buy + 2:
            return "strong_sell"
        if self.sell > self.buy:
            return "sell"
        return "neutral"


def summarize(signals: Iterable[Signal]) -> SignalSummary:
    counts = Counter(signals)
    return SignalSummary(
        buy=counts[Signal.BUY],
        sell=counts[Signal.SELL],
        neutral=counts[Signal.NEUTRAL],
    )


class IndicatorEngine:
    """Computes indicators from a CandleSeries.

    Results are computed fresh per call and never cached apart from the
    series they came from.
    """

    def __init__(
        self,
        rsi_period: int = 14,
        macd_fast: int = 12,
        macd_slow: int = 26,
        bb_period: int = 20,
        bb_num_std: float = 2.0,
        sma_period: int = 20,
        ema_period: int = 20,
        williams_r_period: int = 14,
        cci_period: int = 20,
    ) -> None:
        self._default_windows: dict[IndicatorKind, int] = {
            IndicatorKind.RSI: rsi_period,
            IndicatorKind.SMA: sma_period,
            IndicatorKind.EMA: ema_period,
            IndicatorKind.MACD: macd_slow,
            IndicatorKind.BB: bb_period,
            IndicatorKind.WILLIAMS_R: williams_r_period,
            IndicatorKind.CCI: cci_period,
        }
        self._macd_fast = macd_fast
        self._bb_num_std = bb_num_std

    def default_window(self, kind: IndicatorKind) -> int:
        return self._default_windows[kind]

    def compute(
        self,
        series: CandleSeries,
        kind: IndicatorKind,
        window: int | None = None,
    ) -> IndicatorResult:
        """Compute one indicator over the series.

        ``window`` overrides the default period of every kind but MACD.
        MACD always uses the configured fast/slow pair.

        Raises:
            InsufficientDataError: series shorter than the indicator needs.
        """
        closes = series.closes()
        period = self._default_windows[kind]
        if window is not None and kind is not IndicatorKind.MACD:
            period = window

        value: float | BollingerBands
        if kind is IndicatorKind.SMA:
            value = sma(closes, period)
        elif kind is IndicatorKind.EMA:
            value = ema(closes, period)
        elif kind is IndicatorKind.RSI:
            value = rsi(closes, period)
        elif kind is IndicatorKind.MACD:
            value = macd(closes, self._macd_fast, period)
        elif kind is IndicatorKind.WILLIAMS_R:
            value = williams_r(series.candles, period)
        elif kind is IndicatorKind.CCI:
            value = cci(series.candles, period)
        else:
            value = bollinger(closes, period, self._bb_num_std)

        last = series.last
        assert last is not None  # non-empty after the length checks above
        return IndicatorResult(
            kind=kind,
            value=value,
            window=period,
            as_of=last.bucket_start_ms,
        )

    def snapshot(
        self,
        series: CandleSeries,
        sma_windows: Sequence[int] = (20, 50, 200),
        ema_windows: Sequence[int] = (12, 26),
    ) -> list[IndicatorResult | InsufficientData]:
        """Compute the standard panel; short history yields InsufficientData."""
        requests: list[tuple[IndicatorKind, int | None]] = [
            (IndicatorKind.RSI, None),
            (IndicatorKind.MACD, None),
            (IndicatorKind.BB, None),
            *((IndicatorKind.SMA, w) for w in sma_windows),
            *((IndicatorKind.EMA, w) for w in ema_windows),
            (IndicatorKind.WILLIAMS_R, None),
            (IndicatorKind.CCI, None),
        ]

        out: list[IndicatorResult | InsufficientData] = []
        for kind, window in requests:
            try:
                out.append(self.compute(series, kind, window))
            except InsufficientDataError as e:
                out.append(
                    InsufficientData(
                        kind=kind,
                        window=window or self._default_windows[kind],
                        required=e.required,
                        actual=e.actual,
                    )
                )
        return out
