"""Tests for verman.core.advisor module."""

from pathlib import Path

import pytest

from verman.core.advisor import FailureAdvisor, detect_install_origin, upgrade_instructions
from verman.core.builder import BuilderError

CATALOG = ["3.12.3", "3.12.4", "3.13-dev", "miniconda3-3.12-24.1.2", "pypy3.10-7.3.16"]


@pytest.fixture
def advisor(temp_dir: Path) -> FailureAdvisor:
    return FailureAdvisor(lambda: list(CATALOG), install_dir=temp_dir)


class TestMatches:
    """Literal substring search over the catalog."""

    def test_lists_every_definition_containing_the_name(self, advisor: FailureAdvisor):
        assert advisor.matches("3.12") == ["3.12.3", "3.12.4", "miniconda3-3.12-24.1.2"]

    def test_no_regex_interpretation(self, advisor: FailureAdvisor):
        """A dot is a literal dot, not a wildcard."""
        assert advisor.matches("3-12") == []
        assert advisor.matches("3.1.") == []

    def test_no_matches(self, advisor: FailureAdvisor):
        assert advisor.matches("jython") == []


class TestAdvise:
    """Tests for the advisory text."""

    def test_lists_matches_indented(self, advisor: FailureAdvisor):
        text = advisor.advise("3.12")

        assert "The following versions contain `3.12' in the name:" in text
        lines = text.splitlines()
        assert "  3.12.3" in lines
        assert "  3.12.4" in lines
        assert "  miniconda3-3.12-24.1.2" in lines
        assert "  3.13-dev" not in lines

    def test_omits_match_header_without_matches(self, advisor: FailureAdvisor):
        text = advisor.advise("jython")

        assert "The following versions" not in text
        assert "verman install --list-all" in text

    def test_always_points_to_list_all(self, advisor: FailureAdvisor):
        assert "See all available versions with `verman install --list-all'." in advisor.advise(
            "3.12"
        )

    def test_catalog_failure_still_gives_guidance(self, temp_dir: Path):
        def broken() -> list[str]:
            raise BuilderError("builder failed")

        text = FailureAdvisor(broken, install_dir=temp_dir).advise("3.12")

        assert "The following versions" not in text
        assert "--list-all" in text


class TestUpgradeInstructions:
    """Upgrade guidance depends on how verman was installed."""

    def test_git_checkout(self, temp_dir: Path):
        (temp_dir / ".git").mkdir()

        assert detect_install_origin(temp_dir) == "git"
        assert f"cd {temp_dir} && git pull && cd -" in upgrade_instructions(temp_dir)

    def test_homebrew(self, temp_dir: Path):
        install_dir = temp_dir / "Cellar" / "verman" / "0.4.0" / "libexec"
        install_dir.mkdir(parents=True)

        assert detect_install_origin(install_dir) == "homebrew"
        assert "brew upgrade verman" in upgrade_instructions(install_dir)

    def test_site_packages(self, temp_dir: Path):
        install_dir = temp_dir / "lib" / "python3.12" / "site-packages"
        install_dir.mkdir(parents=True)

        assert detect_install_origin(install_dir) == "pip"
        assert "pip install --upgrade verman" in upgrade_instructions(install_dir)

    def test_unknown_origin(self, temp_dir: Path):
        assert detect_install_origin(temp_dir) == "unknown"
        assert upgrade_instructions(temp_dir) == (
            "If the version you need is missing, try upgrading verman."
        )

    def test_advise_includes_origin_specific_command(self, temp_dir: Path):
        (temp_dir / ".git").mkdir()
        advisor = FailureAdvisor(lambda: [], install_dir=temp_dir)

        assert "git pull" in advisor.advise("3.99.0")
