"""Tests for schema version comparison."""

import pytest

from basic_cli.models import Schema
from basic_cli.sync.comparator import VersionComparison, VersionStatus, compare_versions


class TestCompareVersions:
    """Tests for compare_versions."""

    @pytest.mark.parametrize(
        "local,remote,expected",
        [
            (1, 1, VersionStatus.EQUAL),
            (0, 0, VersionStatus.EQUAL),
            (2, 1, VersionStatus.AHEAD),
            (1, 0, VersionStatus.AHEAD),
            (3, 5, VersionStatus.BEHIND),
            (0, 1, VersionStatus.BEHIND),
        ],
    )
    def test_ordering(self, local, remote, expected):
        result = compare_versions(Schema("p", local), Schema("p", remote))

        assert result.status == expected
        assert result.local_version == local
        assert result.remote_version == remote

    def test_missing_version_counts_as_zero(self):
        """A None version behaves like 0."""
        local = Schema("p", 0)
        local.version = None

        result = compare_versions(local, Schema("p", 2))

        assert result.status == VersionStatus.BEHIND
        assert result.local_version == 0

    def test_total_over_small_range(self):
        """Exactly one verdict for every pair, consistent with integer order."""
        for local in range(4):
            for remote in range(4):
                status = compare_versions(Schema("p", local), Schema("p", remote)).status
                if local == remote:
                    assert status == VersionStatus.EQUAL
                elif local > remote:
                    assert status == VersionStatus.AHEAD
                else:
                    assert status == VersionStatus.BEHIND

    def test_ignores_content(self):
        local = Schema.from_dict({"project_id": "p", "version": 2, "tables": {}})
        remote = Schema.from_dict(
            {"project_id": "p", "version": 2, "tables": {"t": {"type": "document"}}}
        )

        assert compare_versions(local, remote).status == VersionStatus.EQUAL


class TestVersionComparison:
    def test_both_unpublished(self):
        assert VersionComparison(VersionStatus.EQUAL, 0, 0).both_unpublished
        assert not VersionComparison(VersionStatus.EQUAL, 1, 1).both_unpublished
        assert not VersionComparison(VersionStatus.AHEAD, 1, 0).both_unpublished

    def test_status_values(self):
        assert VersionStatus.AHEAD.value == "ahead"
        assert VersionStatus("behind") is VersionStatus.BEHIND
