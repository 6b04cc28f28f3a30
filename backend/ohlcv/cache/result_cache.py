"""Result cache — last-known-good candle series per (subject, interval, source).

The cache is an injected object over a pluggable CacheStore, with an
injectable millisecond clock so tests control freshness. Entries are
overwritten on refresh and never evicted by a background task: a stale
entry is simply re-fetched by the next resolve, and remains available
as a stale fallback until it is overwritten.

No locking and no per-key request coalescing: concurrent resolves for the
same key may both miss and both hit the upstream.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Protocol, runtime_checkable

import structlog

from ohlcv.sources.types import CandleSeries, Interval
from ohlcv.utils.time import MS_PER_SECOND, utc_now_ms

log = structlog.get_logger()

Clock = Callable[[], int]


@dataclass(frozen=True)
class CacheKey:
    """Identity of one cached series.

    days is part of the key: a 7-day series must not answer a 200-day
    request for the same subject and interval.
    """

    subject: str
    interval: Interval
    source_id: str
    days: int


@dataclass(frozen=True)
class CacheEntry:
    """Cached payload with its fetch time and TTL.

    is_stale is computed on read; stored entries always hold False.
    """

    key: CacheKey
    payload: CandleSeries
    fetched_at_ms: int
    ttl_ms: int
    is_stale: bool = False


@runtime_checkable
class CacheStore(Protocol):
    """Backing store for ResultCache. Swap in Redis or similar here."""

    def get(self, key: CacheKey) -> CacheEntry | None: ...

    def set(self, key: CacheKey, entry: CacheEntry) -> None: ...

    def clear(self) -> None: ...


class InMemoryCacheStore:
    """Process-local dict store."""

    def __init__(self) -> None:
        self._data: dict[CacheKey, CacheEntry] = {}

    def get(self, key: CacheKey) -> CacheEntry | None:
        return self._data.get(key)

    def set(self, key: CacheKey, entry: CacheEntry) -> None:
        self._data[key] = entry

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


class TTLTable:
    """Per-namespace TTLs and the interval -> namespace mapping."""

    def __init__(
        self,
        ttl_seconds: Mapping[str, int],
        interval_namespaces: Mapping[Interval, str],
    ) -> None:
        for namespace, ttl in ttl_seconds.items():
            if ttl <= 0:
                raise ValueError(f"TTL for namespace {namespace!r} must be > 0, got {ttl}")
        for interval, namespace in interval_namespaces.items():
            if namespace not in ttl_seconds:
                raise ValueError(
                    f"Interval {interval.value} maps to unknown namespace {namespace!r}"
                )
        self._ttl_seconds = dict(ttl_seconds)
        self._interval_namespaces = dict(interval_namespaces)

    def namespace_for(self, interval: Interval) -> str:
        try:
            return self._interval_namespaces[interval]
        except KeyError:
            raise ValueError(f"No cache namespace configured for {interval.value}") from None

    def ttl_ms(self, namespace: str) -> int:
        return self._ttl_seconds[namespace] * MS_PER_SECOND

    def ttl_ms_for(self, interval: Interval) -> int:
        return self.ttl_ms(self.namespace_for(interval))


class ResultCache:
    """get/put over a CacheStore with freshness evaluated against a clock."""

    def __init__(
        self,
        store: CacheStore | None = None,
        clock: Clock = utc_now_ms,
    ) -> None:
        self._store: CacheStore = store if store is not None else InMemoryCacheStore()
        self._clock = clock

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.fetched_at_ms < entry.ttl_ms

    def get(self, key: CacheKey) -> CacheEntry | None:
        """Entry for the key regardless of TTL, flagged stale when expired."""
        entry = self._store.get(key)
        if entry is None:
            return None
        return replace(entry, is_stale=not self.is_fresh(entry))

    def get_fresh(self, key: CacheKey) -> CacheEntry | None:
        entry = self.get(key)
        if entry is None or entry.is_stale:
            return None
        return entry

    def put(self, key: CacheKey, payload: CandleSeries, ttl_ms: int) -> CacheEntry:
        """Store (overwrite) the payload for the key, stamped with now."""
        if ttl_ms <= 0:
            raise ValueError(f"ttl_ms must be > 0, got {ttl_ms}")
        entry = CacheEntry(
            key=key,
            payload=payload,
            fetched_at_ms=self._clock(),
            ttl_ms=ttl_ms,
        )
        self._store.set(key, entry)
        log.debug(
            "cache_put",
            subject=key.subject,
            interval=key.interval.value,
            source_id=key.source_id,
            candles=len(payload),
            ttl_ms=ttl_ms,
        )
        return entry

    def latest(self, keys: Iterable[CacheKey]) -> CacheEntry | None:
        """Most recently fetched entry among keys, ignoring TTL.

        Ties keep the earlier key, so callers pass keys in priority order.
        """
        best: CacheEntry | None = None
        for key in keys:
            entry = self.get(key)
            if entry is not None and (best is None or entry.fetched_at_ms > best.fetched_at_ms):
                best = entry
        return best
