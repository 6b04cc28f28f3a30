"""CoinGeckoIngestor — loose price ticks from /coins/{id}/market_chart.

CoinGecko picks the sample spacing from the requested window:
5-minute points up to 1 day, hourly up to 90 days, daily beyond that.
Any interval that is a whole multiple of that spacing can be bucketed
from the ticks.
"""

from __future__ import annotations

from typing import Self

import httpx
import structlog

from ohlcv.sources.coingecko.mappers import (
    SOURCE_ID,
    market_chart_to_ticks,
    market_chart_to_volumes,
)
from ohlcv.sources.errors import ProviderHTTPError
from ohlcv.sources.types import FetchResult, Interval, VolumeMode
from ohlcv.sources.utils import get_json
from ohlcv.utils.time import MS_PER_DAY, MS_PER_HOUR, MS_PER_MINUTE

logger = structlog.get_logger()


def tick_spacing_ms(days: int) -> int:
    """Granularity CoinGecko returns for a market_chart window."""
    if days <= 1:
        return 5 * MS_PER_MINUTE
    if days <= 90:
        return MS_PER_HOUR
    return MS_PER_DAY


class CoinGeckoIngestor:
    """TickIngestor implementation backed by the CoinGecko public API."""

    def __init__(
        self,
        base_url: str,
        vs_currency: str = "usd",
        api_key: str = "",
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._vs_currency = vs_currency
        self._headers = {"Accept": "application/json"}
        if api_key:
            self._headers["x-cg-demo-api-key"] = api_key
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
        )

    @property
    def source_id(self) -> str:
        return SOURCE_ID

    def supports(self, interval: Interval, days: int) -> bool:
        spacing = tick_spacing_ms(days)
        return interval.width_ms >= spacing and interval.width_ms % spacing == 0

    async def fetch(
        self,
        subject: str,
        interval: Interval,
        days: int,
    ) -> FetchResult:
        try:
            payload = await get_json(
                self._client,
                SOURCE_ID,
                f"/coins/{subject}/market_chart",
                params={"vs_currency": self._vs_currency, "days": days},
                headers=self._headers,
            )
        except ProviderHTTPError as e:
            if e.status_code == 404:
                logger.info("coingecko_subject_unknown", subject=subject)
                return FetchResult.of_ticks(SOURCE_ID, [], VolumeMode.SNAPSHOT)
            raise

        ticks = market_chart_to_ticks(payload)
        volumes = market_chart_to_volumes(payload)
        logger.debug(
            "coingecko_ticks_fetched",
            subject=subject,
            days=days,
            count=len(ticks),
            volume_samples=len(volumes),
        )
        return FetchResult.of_ticks(SOURCE_ID, ticks, VolumeMode.SNAPSHOT, volumes)

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
