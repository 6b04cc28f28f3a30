"""Shared ingestor utilities.

Centralized helpers used across all HTTP-backed provider implementations.
"""

from __future__ import annotations

from typing import Any

import httpx

from ohlcv.sources.errors import (
    ProviderError,
    ProviderHTTPError,
    ProviderResponseError,
    ProviderTimeoutError,
)


def to_float(value: float | int | str) -> float:
    """Convert a provider numeric field to float.

    Binance REST returns strings for prices and volumes; CoinGecko returns
    JSON numbers. Both end up as float at this boundary.
    """
    if isinstance(value, bool):
        raise TypeError(f"Expected a number, got bool {value!r}")
    return float(value)


async def get_json(
    client: httpx.AsyncClient,
    source_id: str,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> Any:
    """GET a URL and decode JSON, mapping every failure to ProviderError."""
    try:
        resp = await client.get(url, params=params, headers=headers)
    except httpx.TimeoutException as e:
        raise ProviderTimeoutError(source_id, f"request timed out: {e}") from e
    except httpx.HTTPError as e:
        raise ProviderError(source_id, f"transport error: {e}") from e

    if resp.status_code >= 400:
        raise ProviderHTTPError(source_id, resp.status_code, resp.text[:200])

    try:
        return resp.json()
    except ValueError as e:
        raise ProviderResponseError(source_id, "response body is not JSON") from e
