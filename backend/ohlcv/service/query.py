"""Query shape accepted from the request layer.

CandleQuery is a standalone BaseModel (not nested under AppConfig)
because each request carries its own parameters.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, Field, field_validator

from ohlcv.engine.indicators import IndicatorKind
from ohlcv.sources.types import Interval, Purpose

MAX_WINDOW_DAYS = 365
MAX_INDICATOR_WINDOW = 500

_SUBJECT_RE = re.compile(r"^[a-z0-9][a-z0-9-]{0,63}$")


class CandleQuery(BaseModel):
    """One candle or indicator request."""

    subject: str
    interval: Interval = Interval.D1
    days: int = Field(default=30, ge=1, le=MAX_WINDOW_DAYS)
    purpose: Purpose = Purpose.CHART
    indicator: IndicatorKind | None = None
    window: int | None = Field(default=None, ge=1, le=MAX_INDICATOR_WINDOW)

    @field_validator("subject")
    @classmethod
    def validate_subject(cls, v: str) -> str:
        v = v.strip().lower()
        if not _SUBJECT_RE.match(v):
            raise ValueError(f"Invalid subject: {v!r}")
        return v
