"""BinanceIngestor — native OHLCV klines from the Binance spot REST API.

Binance pre-buckets candles server-side, so this ingestor returns
FetchKind.CANDLES and only serves its native resolutions. Weekly klines
open on Monday, which is not a multiple of the week width since the epoch,
so 1w is left to tick providers that can be re-bucketed.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Self

import httpx
import structlog

from ohlcv.sources.binance.mappers import SOURCE_ID, klines_to_candles
from ohlcv.sources.types import FetchResult, Interval
from ohlcv.sources.utils import get_json
from ohlcv.utils.time import MS_PER_DAY

logger = structlog.get_logger()

# Binance caps one klines request at 1000 rows
MAX_KLINES_LIMIT = 1000

# Interval to Binance kline interval string
_INTERVAL_MAP: dict[Interval, str] = {
    Interval.H1: "1h",
    Interval.H4: "4h",
    Interval.D1: "1d",
}


class BinanceIngestor:
    """TickIngestor implementation backed by Binance /api/v3/klines."""

    def __init__(
        self,
        base_url: str,
        symbol_map: Mapping[str, str],
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._symbol_map = {k.lower(): v.upper() for k, v in symbol_map.items()}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            headers={"Accept": "application/json"},
        )

    @property
    def source_id(self) -> str:
        return SOURCE_ID

    def supports(self, interval: Interval, days: int) -> bool:
        return interval in _INTERVAL_MAP

    async def fetch(
        self,
        subject: str,
        interval: Interval,
        days: int,
    ) -> FetchResult:
        symbol = self._symbol_map.get(subject.lower())
        if symbol is None:
            logger.info("binance_symbol_unmapped", subject=subject)
            return FetchResult.of_candles(SOURCE_ID, [], interval)

        payload = await get_json(
            self._client,
            SOURCE_ID,
            "/api/v3/klines",
            params={
                "symbol": symbol,
                "interval": _INTERVAL_MAP[interval],
                "limit": klines_limit(interval, days),
            },
        )
        candles = klines_to_candles(payload, interval.width_ms)
        logger.debug(
            "binance_klines_fetched",
            symbol=symbol,
            interval=interval.value,
            count=len(candles),
        )
        return FetchResult.of_candles(SOURCE_ID, candles, interval)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        await self.aclose()


def klines_limit(interval: Interval, days: int) -> int:
    """Number of klines covering ``days``, capped at the API maximum."""
    needed = math.ceil(days * MS_PER_DAY / interval.width_ms)
    return max(1, min(needed, MAX_KLINES_LIMIT))
