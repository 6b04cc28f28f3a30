"""Engine error hierarchy.

All engine exceptions inherit from EngineError so the request layer can
catch one type. ProviderError and its subclasses are transport-level and
never escape SourceResolver; the resolver turns an exhausted chain into
UpstreamUnavailableError or ComplianceBlockedError.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base exception for all engine errors."""


class UpstreamUnavailableError(EngineError):
    """Every provider failed and no cached entry exists for the key.

    ``attempts`` holds (source_id, reason) pairs in the order they were tried.
    """

    def __init__(
        self,
        subject: str,
        interval: str,
        attempts: list[tuple[str, str]] | None = None,
    ) -> None:
        self.subject = subject
        self.interval = interval
        self.attempts = list(attempts or [])
        detail = "; ".join(f"{sid}: {reason}" for sid, reason in self.attempts)
        msg = f"No upstream data for {subject} @ {interval}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class InvalidIntervalError(EngineError):
    """Requested granularity cannot be derived from any configured provider."""

    def __init__(self, interval: str, reason: str) -> None:
        self.interval = interval
        self.reason = reason
        super().__init__(f"Invalid interval {interval}: {reason}")


class ComplianceBlockedError(EngineError):
    """Source policy denied every remaining candidate for the purpose."""

    def __init__(self, purpose: str, blocked_sources: list[str]) -> None:
        self.purpose = purpose
        self.blocked_sources = list(blocked_sources)
        super().__init__(
            f"Compliance policy blocked all sources for {purpose}: "
            f"{', '.join(self.blocked_sources) or '(none configured)'}"
        )


class InsufficientDataError(EngineError):
    """Indicator requested with a shorter series than it needs."""

    def __init__(self, indicator: str, required: int, actual: int) -> None:
        self.indicator = indicator
        self.required = required
        self.actual = actual
        super().__init__(
            f"need ≥{required} points for {indicator}, got {actual}"
        )


class ProviderError(EngineError):
    """Transport or payload failure talking to one upstream provider."""

    def __init__(self, source_id: str, message: str) -> None:
        self.source_id = source_id
        self.message = message
        super().__init__(f"{source_id}: {message}")


class ProviderTimeoutError(ProviderError):
    """Provider did not answer within the configured timeout."""


class ProviderHTTPError(ProviderError):
    """Provider answered with a non-2xx status.

    Stores the HTTP status code alongside the provider's message.
    """

    def __init__(self, source_id: str, status_code: int, message: str) -> None:
        self.status_code = status_code
        super().__init__(source_id, f"HTTP {status_code}: {message}")


class ProviderResponseError(ProviderError):
    """Provider answered 2xx with a payload we cannot parse."""
