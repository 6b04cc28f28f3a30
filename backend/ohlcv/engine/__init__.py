"""Engine layer: candle bucketing, source resolution and indicator calculation."""

from ohlcv.engine.bucketer import CandleBucketer
from ohlcv.engine.indicators import (
    BollingerBands,
    IndicatorEngine,
    IndicatorKind,
    IndicatorResult,
    InsufficientData,
    Signal,
    SignalSummary,
)
from ohlcv.engine.resolver import ProviderDescriptor, SourceResolver

__all__ = [
    "BollingerBands",
    "CandleBucketer",
    "IndicatorEngine",
    "IndicatorKind",
    "IndicatorResult",
    "InsufficientData",
    "ProviderDescriptor",
    "Signal",
    "SignalSummary",
    "SourceResolver",
]
