"""Tests for CoinGeckoIngestor and the market_chart mappers.

HTTP is served by httpx.MockTransport; no network access.
"""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from ohlcv.sources.coingecko import CoinGeckoIngestor
from ohlcv.sources.coingecko.ingestor import tick_spacing_ms
from ohlcv.sources.coingecko.mappers import (
    market_chart_to_ticks,
    market_chart_to_volumes,
)
from ohlcv.sources.errors import ProviderHTTPError, ProviderResponseError
from ohlcv.sources.types import FetchKind, Interval, Tick, VolumeMode, VolumeSample
from ohlcv.utils.time import MS_PER_DAY, MS_PER_HOUR, MS_PER_MINUTE
from tests.factories import DEFAULT_TS


def _ingestor(
    handler: Callable[[httpx.Request], httpx.Response],
    api_key: str = "",
) -> CoinGeckoIngestor:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        base_url="https://api.coingecko.test/api/v3",
    )
    return CoinGeckoIngestor(
        base_url="https://api.coingecko.test/api/v3",
        api_key=api_key,
        client=client,
    )


class TestMarketChartMapper:
    """Test prices and total_volumes conversion."""

    def test_prices_become_volume_less_ticks(self) -> None:
        payload = {
            "prices": [[DEFAULT_TS, 100.0], [DEFAULT_TS + MS_PER_HOUR, 101.5]],
            "total_volumes": [[DEFAULT_TS, 5e9]],
        }
        assert market_chart_to_ticks(payload) == [
            Tick(DEFAULT_TS, 100.0),
            Tick(DEFAULT_TS + MS_PER_HOUR, 101.5),
        ]

    def test_volumes_keep_their_own_timestamps(self) -> None:
        payload = {
            "prices": [[DEFAULT_TS, 100.0]],
            "total_volumes": [[DEFAULT_TS + 61_000, 7e9], [DEFAULT_TS + 1_000, 5e9]],
        }
        assert market_chart_to_volumes(payload) == [
            VolumeSample(DEFAULT_TS + 1_000, 5e9),
            VolumeSample(DEFAULT_TS + 61_000, 7e9),
        ]

    def test_missing_volumes_gives_no_samples(self) -> None:
        assert market_chart_to_volumes({"prices": [[DEFAULT_TS, 1.0]]}) == []

    def test_sorts_by_timestamp(self) -> None:
        payload = {"prices": [[DEFAULT_TS + 2, 2.0], [DEFAULT_TS, 1.0]]}
        assert [t.price for t in market_chart_to_ticks(payload)] == [1.0, 2.0]

    def test_skips_null_prices(self) -> None:
        payload = {"prices": [[DEFAULT_TS, None], [DEFAULT_TS + 1, 3.0]]}
        assert [t.price for t in market_chart_to_ticks(payload)] == [3.0]

    def test_missing_prices_rejected(self) -> None:
        with pytest.raises(ProviderResponseError, match="no prices"):
            market_chart_to_ticks({"error": "coin not found"})

    def test_malformed_point_rejected(self) -> None:
        with pytest.raises(ProviderResponseError, match="malformed"):
            market_chart_to_ticks({"prices": [[DEFAULT_TS]]})


class TestTickSpacing:
    """Test CoinGecko's automatic granularity."""

    @pytest.mark.parametrize(
        ("days", "spacing"),
        [
            (1, 5 * MS_PER_MINUTE),
            (2, MS_PER_HOUR),
            (90, MS_PER_HOUR),
            (91, MS_PER_DAY),
            (365, MS_PER_DAY),
        ],
    )
    def test_spacing(self, days: int, spacing: int) -> None:
        assert tick_spacing_ms(days) == spacing

    def test_supports_depends_on_window(self) -> None:
        ingestor = _ingestor(lambda request: httpx.Response(200, json={"prices": []}))
        assert ingestor.supports(Interval.H1, 30)
        assert ingestor.supports(Interval.W1, 30)
        assert not ingestor.supports(Interval.H1, 365)
        assert not ingestor.supports(Interval.H4, 365)
        assert ingestor.supports(Interval.D1, 365)
        assert ingestor.supports(Interval.W1, 365)


class TestCoinGeckoIngestor:
    """Test fetch against a mocked market_chart endpoint."""

    async def test_fetch_returns_snapshot_ticks(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "prices": [[DEFAULT_TS, 100.0], [DEFAULT_TS + MS_PER_HOUR, 102.0]],
                    "total_volumes": [[DEFAULT_TS, 1.0], [DEFAULT_TS + MS_PER_HOUR, 2.0]],
                },
            )

        result = await _ingestor(handler).fetch("bitcoin", Interval.D1, 30)

        assert result.kind is FetchKind.TICKS
        assert result.volume_mode is VolumeMode.SNAPSHOT
        assert result.source_id == "coingecko"
        assert [t.price for t in result.ticks] == [100.0, 102.0]
        assert [v.volume for v in result.volumes] == [1.0, 2.0]

        request = seen[0]
        assert request.url.path == "/api/v3/coins/bitcoin/market_chart"
        assert request.url.params["vs_currency"] == "usd"
        assert request.url.params["days"] == "30"
        assert "x-cg-demo-api-key" not in request.headers

    async def test_api_key_header(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"prices": []})

        await _ingestor(handler, api_key="demo-key").fetch("bitcoin", Interval.D1, 30)

        assert seen[0].headers["x-cg-demo-api-key"] == "demo-key"

    async def test_unknown_coin_is_empty(self) -> None:
        ingestor = _ingestor(
            lambda request: httpx.Response(404, json={"error": "coin not found"})
        )
        result = await ingestor.fetch("nope", Interval.D1, 30)

        assert result.is_empty
        assert result.kind is FetchKind.TICKS

    async def test_rate_limited_raises(self) -> None:
        ingestor = _ingestor(lambda request: httpx.Response(429, text="slow down"))
        with pytest.raises(ProviderHTTPError) as exc_info:
            await ingestor.fetch("bitcoin", Interval.D1, 30)
        assert exc_info.value.status_code == 429
        assert "HTTP 429" in str(exc_info.value)
