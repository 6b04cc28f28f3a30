"""FakeIngestor — in-memory provider for testing.

Lightweight implementation of TickIngestor for unit testing the resolver
and service layers without network access.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Self

from ohlcv.sources.types import FetchKind, FetchResult, Interval


class FakeIngestor:
    """In-memory TickIngestor for testing.

    Supply a canned FetchResult or an exception at construction, or swap
    them during a test via set_result()/set_error(). Every fetch is
    recorded in ``calls`` so tests can assert which providers were hit.
    """

    def __init__(
        self,
        source_id: str,
        result: FetchResult | None = None,
        error: BaseException | None = None,
        intervals: Iterable[Interval] | None = None,
        delay_seconds: float = 0.0,
    ) -> None:
        self._source_id = source_id
        self._result = result
        self._error = error
        self._intervals = frozenset(intervals) if intervals is not None else None
        self._delay = delay_seconds
        self.calls: list[tuple[str, Interval, int]] = []
        self.closed = False

    def set_result(self, result: FetchResult) -> None:
        self._result = result
        self._error = None

    def set_error(self, error: BaseException) -> None:
        self._error = error

    @property
    def source_id(self) -> str:
        return self._source_id

    def supports(self, interval: Interval, days: int) -> bool:
        return self._intervals is None or interval in self._intervals

    async def fetch(
        self,
        subject: str,
        interval: Interval,
        days: int,
    ) -> FetchResult:
        self.calls.append((subject, interval, days))
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        if self._result is None:
            return FetchResult(source_id=self._source_id, kind=FetchKind.TICKS)
        return self._result

    async def aclose(self) -> None:
        self.closed = True

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        await self.aclose()
