"""Tests for SourcePolicy."""

from __future__ import annotations

import pytest

from ohlcv.sources.policy import PolicyEntry, SourcePolicy
from ohlcv.sources.types import Purpose


class TestIsAllowed:
    """Test purpose gating against the entry table."""

    def test_licensed_source_allowed_for_both(self, policy: SourcePolicy) -> None:
        assert policy.is_allowed("primary", Purpose.CHART)
        assert policy.is_allowed("primary", Purpose.DOWNLOAD)

    def test_display_only_source_blocked_for_download(self, policy: SourcePolicy) -> None:
        assert policy.is_allowed("backup", Purpose.CHART)
        assert not policy.is_allowed("backup", Purpose.DOWNLOAD)

    def test_unknown_source_denied(self, policy: SourcePolicy) -> None:
        """Fail closed: no entry means no permission."""
        assert not policy.is_allowed("unlisted", Purpose.CHART)
        assert "no policy entry" in (policy.block_reason("unlisted", Purpose.CHART) or "")

    def test_lookup_is_case_insensitive(self, policy: SourcePolicy) -> None:
        assert policy.is_allowed(" Primary ", Purpose.DOWNLOAD)

    def test_display_disallowed_blocks_chart(self) -> None:
        policy = SourcePolicy(
            [
                PolicyEntry(
                    source_id="hidden",
                    allow_display=False,
                    allow_redistribution=True,
                    allowed_purposes=frozenset({Purpose.CHART}),
                ),
            ]
        )
        assert policy.block_reason("hidden", Purpose.CHART) == (
            "Source 'hidden' may not be displayed"
        )

    def test_purpose_not_listed(self) -> None:
        policy = SourcePolicy(
            [
                PolicyEntry(
                    source_id="export",
                    allow_display=True,
                    allow_redistribution=True,
                    allowed_purposes=frozenset({Purpose.DOWNLOAD}),
                ),
            ]
        )
        assert not policy.is_allowed("export", Purpose.CHART)
        assert policy.is_allowed("export", Purpose.DOWNLOAD)


class TestRedistributionAllowlist:
    """Test the optional download allowlist."""

    def _policy(self, allowlist: list[str] | None) -> SourcePolicy:
        return SourcePolicy(
            [
                PolicyEntry(
                    source_id="binance",
                    allow_display=True,
                    allow_redistribution=True,
                    allowed_purposes=frozenset(Purpose),
                ),
            ],
            redistribution_allowlist=allowlist,
        )

    def test_no_allowlist_permits_licensed(self) -> None:
        assert self._policy(None).is_allowed("binance", Purpose.DOWNLOAD)

    def test_allowlist_excludes(self) -> None:
        policy = self._policy(["other"])
        assert not policy.is_allowed("binance", Purpose.DOWNLOAD)
        assert "allowlist" in (policy.block_reason("binance", Purpose.DOWNLOAD) or "")

    def test_allowlist_does_not_affect_chart(self) -> None:
        assert self._policy([]).is_allowed("binance", Purpose.CHART)

    def test_allowlist_is_normalized(self) -> None:
        assert self._policy(["BINANCE"]).is_allowed("binance", Purpose.DOWNLOAD)


class TestPolicyTable:
    """Test construction and lookups."""

    def test_rejects_duplicate_entries(self) -> None:
        entry = PolicyEntry("dup", True, False, frozenset({Purpose.CHART}))
        with pytest.raises(ValueError, match="Duplicate"):
            SourcePolicy([entry, PolicyEntry("DUP", True, True)])

    def test_attribution(self, policy: SourcePolicy) -> None:
        assert policy.attribution("backup") == "Backup Data"
        assert policy.attribution("unlisted") is None

    def test_source_ids_sorted(self, policy: SourcePolicy) -> None:
        assert policy.source_ids == ["backup", "primary"]
