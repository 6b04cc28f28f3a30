"""Source layer: provider ingestors, source policy, shared domain types.

Re-exports all public types, protocols, and errors for convenient imports:
    from ohlcv.sources import Candle, TickIngestor, SourcePolicy, EngineError
"""

from ohlcv.sources.errors import (
    ComplianceBlockedError,
    EngineError,
    InsufficientDataError,
    InvalidIntervalError,
    ProviderError,
    ProviderHTTPError,
    ProviderResponseError,
    ProviderTimeoutError,
    UpstreamUnavailableError,
)
from ohlcv.sources.ingestor import TickIngestor
from ohlcv.sources.policy import PolicyEntry, SourcePolicy
from ohlcv.sources.types import (
    Candle,
    CandleSeries,
    FetchKind,
    FetchResult,
    Interval,
    Purpose,
    ResolveResult,
    Tick,
    VolumeMode,
    VolumeSample,
)

__all__ = [
    "Candle",
    "CandleSeries",
    "ComplianceBlockedError",
    "EngineError",
    "FetchKind",
    "FetchResult",
    "InsufficientDataError",
    "Interval",
    "InvalidIntervalError",
    "PolicyEntry",
    "ProviderError",
    "ProviderHTTPError",
    "ProviderResponseError",
    "ProviderTimeoutError",
    "Purpose",
    "ResolveResult",
    "SourcePolicy",
    "Tick",
    "TickIngestor",
    "UpstreamUnavailableError",
    "VolumeMode",
    "VolumeSample",
]
