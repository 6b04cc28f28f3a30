"""TickIngestor protocol — abstract interface for one upstream provider.

All provider implementations (Binance, CoinGecko, fake) must satisfy this
protocol. An ingestor talks to exactly one provider and never decides on
fallback: it returns an empty FetchResult when the provider has nothing for
the subject, and raises ProviderError on transport or payload failure.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ohlcv.sources.types import FetchResult, Interval


@runtime_checkable
class TickIngestor(Protocol):
    """Async interface for fetching raw samples from one provider."""

    @property
    def source_id(self) -> str:
        """Stable provider identifier used by policy, cache keys and payloads."""
        ...

    def supports(self, interval: Interval, days: int) -> bool:
        """Whether a candle series at ``interval`` is derivable for ``days``.

        Native-candle providers answer True only for their native
        resolutions. Tick providers answer True when their tick spacing for
        the window is no coarser than the interval.
        """
        ...

    async def fetch(
        self,
        subject: str,
        interval: Interval,
        days: int,
    ) -> FetchResult:
        """Fetch raw samples covering the last ``days`` days.

        Args:
            subject: Instrument id (e.g. "bitcoin").
            interval: Requested candle interval.
            days: Window length in days.

        Returns:
            FetchResult with ticks or native candles, oldest first.
            Empty when the provider has no data for the subject.

        Raises:
            ProviderError: transport, HTTP or payload failure.
        """
        ...

    async def aclose(self) -> None:
        """Release HTTP resources."""
        ...
