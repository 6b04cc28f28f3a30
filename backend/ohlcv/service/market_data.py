"""MarketDataService — request-level entry point.

Resolves a query to a candle series, optionally runs an indicator over it,
and renders the wire shapes the HTTP layer returns:

    candles:   [{timestamp, open, high, low, close, volume?}, ...]
    indicator: {value | {upper, middle, lower}, window, asOf}
               or {insufficientData: {required, actual}}
    snapshot:  indicator entries with a signal each, plus
               summary: {buySignals, sellSignals, neutralSignals, overall}
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Self

import structlog

from ohlcv.engine.indicators import (
    BollingerBands,
    IndicatorEngine,
    IndicatorKind,
    IndicatorResult,
    InsufficientData,
    Signal,
    SignalSummary,
    rsi_zone,
    signal_for,
    summarize,
)
from ohlcv.engine.resolver import SourceResolver
from ohlcv.service.query import CandleQuery
from ohlcv.sources.errors import InsufficientDataError
from ohlcv.sources.ingestor import TickIngestor
from ohlcv.sources.types import Candle, ResolveResult

log = structlog.get_logger()


def candle_to_dict(candle: Candle) -> dict[str, Any]:
    """Render a candle; volume is omitted when the provider had none."""
    out: dict[str, Any] = {
        "timestamp": candle.bucket_start_ms,
        "open": candle.open,
        "high": candle.high,
        "low": candle.low,
        "close": candle.close,
    }
    if candle.volume is not None:
        out["volume"] = candle.volume
    return out


def indicator_value_to_json(value: float | BollingerBands) -> Any:
    if isinstance(value, BollingerBands):
        return {
            "upper": value.upper,
            "middle": value.middle,
            "lower": value.lower,
        }
    return value


def indicator_to_dict(result: IndicatorResult | InsufficientData) -> dict[str, Any]:
    if isinstance(result, InsufficientData):
        return {
            "indicator": result.kind.value,
            "window": result.window,
            "insufficientData": {
                "required": result.required,
                "actual": result.actual,
            },
        }
    return {
        "indicator": result.kind.value,
        "value": indicator_value_to_json(result.value),
        "window": result.window,
        "asOf": result.as_of,
    }


def _summary_to_dict(summary: SignalSummary) -> dict[str, Any]:
    return {
        "buySignals": summary.buy,
        "sellSignals": summary.sell,
        "neutralSignals": summary.neutral,
        "overall": summary.overall,
    }


def _provenance(resolved: ResolveResult) -> dict[str, Any]:
    return {
        "sourceId": resolved.source_id,
        "attribution": resolved.attribution,
        "isStale": resolved.is_stale,
        "fetchedAt": resolved.fetched_at_ms,
    }


class MarketDataService:
    """Wires the resolver and indicator engine behind the request query shape."""

    def __init__(
        self,
        resolver: SourceResolver,
        indicators: IndicatorEngine | None = None,
        ingestors: Iterable[TickIngestor] = (),
    ) -> None:
        self._resolver = resolver
        self._indicators = indicators or IndicatorEngine()
        self._ingestors = list(ingestors)

    async def resolve(self, query: CandleQuery) -> ResolveResult:
        return await self._resolver.resolve(
            query.subject,
            query.interval,
            query.days,
            query.purpose,
        )

    async def candles(self, query: CandleQuery) -> dict[str, Any]:
        resolved = await self.resolve(query)
        return {
            "subject": query.subject,
            "interval": query.interval.value,
            **_provenance(resolved),
            "candles": [candle_to_dict(c) for c in resolved.series],
        }

    async def indicator(self, query: CandleQuery) -> dict[str, Any]:
        """Compute the query's indicator over the resolved series.

        Too-short history is reported in the payload, not raised.
        """
        if query.indicator is None:
            raise ValueError("Query has no indicator selected")

        resolved = await self.resolve(query)
        result: IndicatorResult | InsufficientData
        try:
            result = self._indicators.compute(
                resolved.series, query.indicator, query.window
            )
        except InsufficientDataError as e:
            log.info(
                "indicator_insufficient_data",
                subject=query.subject,
                indicator=query.indicator.value,
                required=e.required,
                actual=e.actual,
            )
            result = InsufficientData(
                kind=query.indicator,
                window=query.window or self._indicators.default_window(query.indicator),
                required=e.required,
                actual=e.actual,
            )

        return {
            "subject": query.subject,
            "interval": query.interval.value,
            **_provenance(resolved),
            **indicator_to_dict(result),
        }

    async def snapshot(self, query: CandleQuery) -> dict[str, Any]:
        """Standard indicator panel with signals, RSI zone and Bollinger position.

        Entries lacking history carry no signal and are left out of the
        summary counts.
        """
        resolved = await self.resolve(query)
        results = self._indicators.snapshot(resolved.series)
        last = resolved.series.last

        entries: list[dict[str, Any]] = []
        signals: list[Signal] = []
        extras: dict[str, Any] = {}
        for r in results:
            entry = indicator_to_dict(r)
            entries.append(entry)
            if not isinstance(r, IndicatorResult) or last is None:
                continue
            signal = signal_for(r, last.close)
            entry["signal"] = signal.value
            signals.append(signal)
            if r.kind is IndicatorKind.RSI and isinstance(r.value, float):
                extras["rsiZone"] = rsi_zone(r.value)
            elif r.kind is IndicatorKind.BB and isinstance(r.value, BollingerBands):
                extras["bollingerWidthPct"] = r.value.width_pct
                extras["bollingerPosition"] = r.value.position(last.close)

        return {
            "subject": query.subject,
            "interval": query.interval.value,
            **_provenance(resolved),
            "price": last.close if last is not None else None,
            "indicators": entries,
            **extras,
            "summary": _summary_to_dict(summarize(signals)),
        }

    async def aclose(self) -> None:
        for ingestor in self._ingestors:
            await ingestor.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        await self.aclose()
