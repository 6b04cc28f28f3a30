"""SourceResolver — ordered provider fallback with policy gating and stale serve.

One resolve call walks a purpose-specific, statically ordered list of
ProviderDescriptors with a single loop:

1. Skip providers that cannot derive the interval for the window.
2. Non-primary providers must pass SourcePolicy before any network I/O.
3. Fetch with a bounded timeout. Empty, timed-out or failed fetches fall
   through to the next provider. No retries here; retrying belongs to the
   caller.
4. Ticks are bucketed, native candles used as-is; the series is cached
   and returned tagged with its source.

When the chain is exhausted, the newest cached entry for any permitted
provider is served with is_stale=True. Providers are tried in order,
never in parallel, so a primary hit costs no fallback traffic.

The query fields are bound through structlog.contextvars for the whole
call, so ingestor and cache events logged during a resolve carry them.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import structlog

from ohlcv.cache.result_cache import CacheKey, ResultCache, TTLTable
from ohlcv.engine.bucketer import CandleBucketer
from ohlcv.sources.errors import (
    ComplianceBlockedError,
    InvalidIntervalError,
    ProviderError,
    UpstreamUnavailableError,
)
from ohlcv.sources.ingestor import TickIngestor
from ohlcv.sources.policy import SourcePolicy
from ohlcv.sources.types import (
    CandleSeries,
    FetchKind,
    FetchResult,
    Interval,
    Purpose,
    ResolveResult,
)
from ohlcv.utils.time import format_timestamp

log = structlog.get_logger()


@dataclass(frozen=True)
class ProviderDescriptor:
    """One entry of a fallback chain.

    The display-safe primary bypasses the policy check; every other
    provider is gated on SourcePolicy for the request's purpose.
    """

    ingestor: TickIngestor
    primary: bool = False
    timeout_seconds: float = 10.0

    @property
    def source_id(self) -> str:
        return self.ingestor.source_id

    def block_reason(self, policy: SourcePolicy, purpose: Purpose) -> str | None:
        """None when this provider may be used for the purpose."""
        if self.primary:
            return None
        return policy.block_reason(self.source_id, purpose)


class SourceResolver:
    """Resolves (subject, interval, days, purpose) to a candle series."""

    def __init__(
        self,
        chains: Mapping[Purpose, Sequence[ProviderDescriptor]],
        policy: SourcePolicy,
        cache: ResultCache,
        ttl_table: TTLTable,
    ) -> None:
        self._chains = {purpose: tuple(chain) for purpose, chain in chains.items()}
        self._policy = policy
        self._cache = cache
        self._ttl_table = ttl_table

    def chain(self, purpose: Purpose) -> tuple[ProviderDescriptor, ...]:
        try:
            return self._chains[purpose]
        except KeyError:
            raise ValueError(f"No provider chain configured for {purpose.value}") from None

    async def resolve(
        self,
        subject: str,
        interval: Interval,
        days: int,
        purpose: Purpose = Purpose.CHART,
    ) -> ResolveResult:
        """Return the best available series for the request.

        Fresh cache entries of all permitted providers are checked, in chain
        order, before any network I/O. Primary preference therefore applies
        per fetch, not per cache read: after a primary outage the fallback's
        entry keeps being served until its TTL lapses, even once the primary
        has recovered.

        Raises:
            InvalidIntervalError: no provider in the chain can derive the interval.
            ComplianceBlockedError: policy denied every candidate, nothing was
                fetched and no cached entry exists.
            UpstreamUnavailableError: every permitted provider failed and no
                cached entry exists.
        """
        with structlog.contextvars.bound_contextvars(
            subject=subject,
            interval=interval.value,
            days=days,
            purpose=purpose.value,
        ):
            return await self._resolve(subject, interval, days, purpose)

    async def _resolve(
        self,
        subject: str,
        interval: Interval,
        days: int,
        purpose: Purpose,
    ) -> ResolveResult:
        candidates: list[ProviderDescriptor] = []
        for descriptor in self.chain(purpose):
            if descriptor.ingestor.supports(interval, days):
                candidates.append(descriptor)
            else:
                log.debug("provider_skipped_interval", source_id=descriptor.source_id)
        if not candidates:
            raise InvalidIntervalError(
                interval.value,
                f"no configured provider can derive {interval.value} candles "
                f"over {days} days",
            )

        permitted: list[ProviderDescriptor] = []
        blocked: list[str] = []
        for descriptor in candidates:
            reason = descriptor.block_reason(self._policy, purpose)
            if reason is None:
                permitted.append(descriptor)
            else:
                blocked.append(descriptor.source_id)
                log.info(
                    "provider_skipped_policy",
                    source_id=descriptor.source_id,
                    reason=reason,
                )

        keys = {
            d.source_id: CacheKey(subject, interval, d.source_id, days)
            for d in permitted
        }

        for descriptor in permitted:
            entry = self._cache.get_fresh(keys[descriptor.source_id])
            if entry is not None:
                log.debug("cache_hit_fresh", source_id=descriptor.source_id)
                return ResolveResult(
                    series=entry.payload,
                    source_id=descriptor.source_id,
                    is_stale=False,
                    fetched_at_ms=entry.fetched_at_ms,
                    attribution=self._policy.attribution(descriptor.source_id),
                )

        attempts: list[tuple[str, str]] = []
        for descriptor in permitted:
            source_id = descriptor.source_id
            series = await self._try_provider(
                descriptor, subject, interval, days, attempts
            )
            if series is None:
                continue

            entry = self._cache.put(
                keys[source_id], series, self._ttl_table.ttl_ms_for(interval)
            )
            log.info(
                "resolve_succeeded",
                source_id=source_id,
                candles=len(series),
                fallbacks=len(attempts),
            )
            return ResolveResult(
                series=series,
                source_id=source_id,
                is_stale=False,
                fetched_at_ms=entry.fetched_at_ms,
                attribution=self._policy.attribution(source_id),
                tried=tuple(sid for sid, _ in attempts) + (source_id,),
            )

        stale = self._cache.latest(keys[d.source_id] for d in permitted)
        if stale is not None:
            log.warning(
                "serving_stale",
                source_id=stale.key.source_id,
                fetched_at=format_timestamp(stale.fetched_at_ms),
                attempts=attempts,
            )
            return ResolveResult(
                series=stale.payload,
                source_id=stale.key.source_id,
                is_stale=True,
                fetched_at_ms=stale.fetched_at_ms,
                attribution=self._policy.attribution(stale.key.source_id),
                tried=tuple(sid for sid, _ in attempts),
            )

        if not attempts and blocked:
            log.error("resolve_failed", reason="compliance", blocked=blocked)
            raise ComplianceBlockedError(purpose.value, blocked)

        log.error("resolve_failed", reason="upstream", attempts=attempts)
        raise UpstreamUnavailableError(subject, interval.value, attempts)

    async def _try_provider(
        self,
        descriptor: ProviderDescriptor,
        subject: str,
        interval: Interval,
        days: int,
        attempts: list[tuple[str, str]],
    ) -> CandleSeries | None:
        """Fetch and convert one provider's data. None means fall through."""
        source_id = descriptor.source_id
        try:
            async with asyncio.timeout(descriptor.timeout_seconds):
                result = await descriptor.ingestor.fetch(subject, interval, days)
        except TimeoutError:
            attempts.append((source_id, f"timed out after {descriptor.timeout_seconds}s"))
            log.warning("provider_failed", source_id=source_id, reason="timeout")
            return None
        except ProviderError as e:
            attempts.append((source_id, e.message))
            log.warning("provider_failed", source_id=source_id, reason=e.message)
            return None

        if result.is_empty:
            attempts.append((source_id, "empty result"))
            log.info("provider_empty", source_id=source_id)
            return None

        try:
            return _to_series(result, interval)
        except ValueError as e:
            attempts.append((source_id, f"unusable payload: {e}"))
            log.warning("provider_failed", source_id=source_id, reason=str(e))
            return None


def _to_series(result: FetchResult, interval: Interval) -> CandleSeries:
    """Bucket ticks, or validate native candles against the interval."""
    if result.kind is FetchKind.TICKS:
        bucketer = CandleBucketer.for_interval(
            interval, result.source_id, result.volume_mode
        )
        return bucketer.bucket(result.ticks, result.volumes)

    if result.native_interval is not interval:
        raise ValueError(
            f"native candles are {getattr(result.native_interval, 'value', None)}, "
            f"requested {interval.value}"
        )
    series = CandleSeries(result.candles)
    if not series.is_aligned(interval.width_ms):
        raise ValueError(f"native candles are not aligned to {interval.value}")
    return series
