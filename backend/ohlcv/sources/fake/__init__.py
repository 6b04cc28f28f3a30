"""In-memory provider for tests and offline runs."""

from ohlcv.sources.fake.ingestor import FakeIngestor

__all__ = [
    "FakeIngestor",
]
