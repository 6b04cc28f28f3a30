"""CoinGecko market-chart provider."""

from ohlcv.sources.coingecko.ingestor import CoinGeckoIngestor

__all__ = [
    "CoinGeckoIngestor",
]
