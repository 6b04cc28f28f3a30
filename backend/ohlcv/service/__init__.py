"""Service layer: query validation, wiring and wire-format rendering."""

from ohlcv.service.factory import build_service
from ohlcv.service.market_data import MarketDataService
from ohlcv.service.query import MAX_WINDOW_DAYS, CandleQuery

__all__ = [
    "MAX_WINDOW_DAYS",
    "CandleQuery",
    "MarketDataService",
    "build_service",
]
