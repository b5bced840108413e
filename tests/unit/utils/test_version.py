"""Tests for verman.utils.version module."""

import pytest

from verman.utils.version import (
    SemVer,
    latest_per_series,
    parse_stable,
)

CATALOG = [
    "3.1.4",
    "3.10.13",
    "3.10.14",
    "3.11.8",
    "3.11.9",
    "3.12.3",
    "3.12.10",
    "3.12.4",
    "3.13.0-rc.1",
    "3.13-dev",
    "pypy3.10-7.3.16",
]


class TestSemVer:
    """Tests for SemVer class."""

    def test_parse(self):
        version = SemVer.parse("3.12.4")

        assert (version.major, version.minor, version.patch) == (3, 12, 4)
        assert version.is_stable is True

    def test_parse_prerelease(self):
        version = SemVer.parse("3.13.0-rc.1")

        assert version.prerelease == "rc.1"
        assert version.is_stable is False

    def test_parse_invalid(self):
        with pytest.raises(ValueError, match="Invalid semver"):
            SemVer.parse("3.13-dev")

    def test_release_key_is_numeric(self):
        assert SemVer.parse("3.12.4").release < SemVer.parse("3.12.10").release
        assert SemVer.parse("3.13.0-rc.1").release == (3, 13, 0)

    def test_str_round_trip(self):
        assert str(SemVer.parse("3.13.0-rc.1")) == "3.13.0-rc.1"


class TestParseStable:
    """Tests for parse_stable function."""

    @pytest.mark.parametrize("name", ["3.13.0-rc.1", "3.13-dev", "pypy3.10-7.3.16", "3.12"])
    def test_rejects_non_releases(self, name: str):
        assert parse_stable(name) is None

    def test_accepts_release(self):
        assert parse_stable("3.12.4") == SemVer(3, 12, 4)


class TestLatestPerSeries:
    """Tests for latest_per_series function."""

    def test_one_release_per_series_sorted(self):
        assert latest_per_series(CATALOG) == ["3.1.4", "3.10.14", "3.11.9", "3.12.10"]

    def test_empty_catalog(self):
        assert latest_per_series([]) == []
