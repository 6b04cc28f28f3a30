"""Binance klines provider."""

from ohlcv.sources.binance.ingestor import BinanceIngestor

__all__ = [
    "BinanceIngestor",
]
