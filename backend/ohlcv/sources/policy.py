"""Source policy — per-provider display and redistribution rules.

Static lookup table, not mutated at runtime. Unknown sources are denied
(fail closed). A DOWNLOAD purpose additionally needs redistribution rights
and, when an allowlist is configured, membership in that allowlist.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from ohlcv.sources.types import Purpose


@dataclass(frozen=True)
class PolicyEntry:
    """Licensing characteristics of one upstream source."""

    source_id: str
    allow_display: bool
    allow_redistribution: bool
    allowed_purposes: frozenset[Purpose] = field(default_factory=frozenset)
    attribution: str | None = None


class SourcePolicy:
    """Answers isAllowed(source, purpose) against a static entry table."""

    def __init__(
        self,
        entries: Iterable[PolicyEntry],
        redistribution_allowlist: Iterable[str] | None = None,
    ) -> None:
        self._entries: dict[str, PolicyEntry] = {}
        for entry in entries:
            key = _normalize(entry.source_id)
            if key in self._entries:
                raise ValueError(f"Duplicate policy entry for source {key!r}")
            self._entries[key] = entry
        self._allowlist: frozenset[str] | None = (
            None
            if redistribution_allowlist is None
            else frozenset(_normalize(s) for s in redistribution_allowlist)
        )

    def get(self, source_id: str) -> PolicyEntry | None:
        return self._entries.get(_normalize(source_id))

    def is_allowed(self, source_id: str, purpose: Purpose) -> bool:
        """True when the source may serve data for the purpose."""
        return self.block_reason(source_id, purpose) is None

    def block_reason(self, source_id: str, purpose: Purpose) -> str | None:
        """Human-readable reason the source is denied, or None if allowed."""
        key = _normalize(source_id)
        entry = self._entries.get(key)
        if entry is None:
            return f"Source {key!r} has no policy entry"
        if purpose not in entry.allowed_purposes:
            return f"Source {key!r} is not cleared for {purpose.value}"
        if not entry.allow_display:
            return f"Source {key!r} may not be displayed"
        if purpose is Purpose.DOWNLOAD:
            if not entry.allow_redistribution:
                return (
                    f"Source {key!r} is display-only; a redistribution "
                    "license is required for downloads"
                )
            if self._allowlist is not None and key not in self._allowlist:
                return f"Source {key!r} is not in the redistribution allowlist"
        return None

    def attribution(self, source_id: str) -> str | None:
        entry = self.get(source_id)
        return entry.attribution if entry else None

    @property
    def source_ids(self) -> list[str]:
        return sorted(self._entries)


def _normalize(source_id: str) -> str:
    return source_id.strip().lower()
