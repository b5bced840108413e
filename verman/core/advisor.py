"""Guidance for definitions the builder does not know."""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Literal

import verman
from verman.core.builder import BuilderError

logger = logging.getLogger("verman.advisor")

InstallOrigin = Literal["git", "homebrew", "pip", "unknown"]


def detect_install_origin(install_dir: Path) -> InstallOrigin:
    """Work out how verman itself was installed.

    Args:
        install_dir: Directory containing the verman package

    Returns:
        "git" for a source checkout, "homebrew" for a Cellar path, "pip"
        for a site-packages install, else "unknown"
    """
    if (install_dir / ".git").exists():
        return "git"
    parts = install_dir.resolve().parts
    if "Cellar" in parts:
        return "homebrew"
    if "site-packages" in parts or "dist-packages" in parts:
        return "pip"
    return "unknown"


def upgrade_instructions(install_dir: Path) -> str:
    """Get upgrade guidance for the way verman was installed."""
    origin = detect_install_origin(install_dir)
    if origin == "git":
        return (
            "If the version you need is missing, try upgrading verman:\n\n"
            f"  cd {install_dir} && git pull && cd -"
        )
    if origin == "homebrew":
        return (
            "If the version you need is missing, try upgrading verman:\n\n"
            "  brew update && brew upgrade verman"
        )
    if origin == "pip":
        return (
            "If the version you need is missing, try upgrading verman:\n\n"
            "  pip install --upgrade verman"
        )
    return "If the version you need is missing, try upgrading verman."


class FailureAdvisor:
    """Builds the message shown when a definition is not found."""

    def __init__(
        self,
        list_definitions: Callable[[], list[str]],
        install_dir: Path | None = None,
    ):
        """Initialize the advisor.

        Args:
            list_definitions: Returns every known definition name
            install_dir: Directory containing the verman package (defaults
                to the parent of the installed package)
        """
        self._list_definitions = list_definitions
        if install_dir is None:
            install_dir = Path(verman.__file__).resolve().parent.parent
        self.install_dir = install_dir

    def matches(self, definition: str) -> list[str]:
        """Known definitions containing ``definition`` as a literal substring."""
        return [name for name in self._list_definitions() if definition in name]

    def advise(self, definition: str) -> str:
        """Build the advisory text for an unknown definition."""
        lines: list[str] = []

        try:
            candidates = self.matches(definition)
        except BuilderError as e:
            logger.warning("Cannot search definitions: %s", e)
            candidates = []
        logger.debug("Found %d definition(s) matching %r", len(candidates), definition)
        if candidates:
            lines.append("")
            lines.append(f"The following versions contain `{definition}' in the name:")
            lines.extend(f"  {name}" for name in candidates)

        lines.append("")
        lines.append("See all available versions with `verman install --list-all'.")
        lines.append("")
        lines.append(upgrade_instructions(self.install_dir))
        return "\n".join(lines)
