"""Cache layer: TTL-based last-known-good storage for candle series."""

from ohlcv.cache.result_cache import (
    CacheEntry,
    CacheKey,
    CacheStore,
    Clock,
    InMemoryCacheStore,
    ResultCache,
    TTLTable,
)

__all__ = [
    "CacheEntry",
    "CacheKey",
    "CacheStore",
    "Clock",
    "InMemoryCacheStore",
    "ResultCache",
    "TTLTable",
]
