"""Existing-installation conflict policy."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from verman.config.schemas import InstallOptions
from verman.core.versions import is_installed

logger = logging.getLogger("verman.conflict")

# Prompt callable: receives the question, returns the user's reply
Confirm = Callable[[str], str]


@dataclass(frozen=True)
class ConflictDecision:
    """Outcome of the conflict check.

    ``proceed`` is True when the install should continue. Otherwise the
    run ends early with ``exit_code`` and ``message`` explains why.
    """

    proceed: bool
    exit_code: int = 0
    message: str = ""

    @property
    def skipped(self) -> bool:
        """True when the run ends early because the version is already installed."""
        return not self.proceed and self.exit_code == 0


PROCEED = ConflictDecision(proceed=True)


def resolve_conflict(
    prefix: Path,
    options: InstallOptions,
    interactive: bool,
    confirm: Confirm | None = None,
) -> ConflictDecision:
    """Decide what to do about an existing installation at ``prefix``.

    Only a ``bin`` directory under the prefix counts as an existing
    installation; an empty prefix directory is not a conflict.

    Args:
        prefix: Install prefix
        options: Install options (force / skip_existing)
        interactive: Whether stdin is a terminal that can be prompted
        confirm: Prompt callable used when interactive

    Returns:
        ConflictDecision
    """
    if not is_installed(prefix):
        return PROCEED

    if options.force:
        logger.info("Overwriting existing installation at %s", prefix)
        return PROCEED

    if options.skip_existing:
        logger.info("Skipping existing installation at %s", prefix)
        return ConflictDecision(proceed=False, exit_code=0)

    if interactive and confirm is not None:
        try:
            reply = confirm(f"{prefix} already exists\ncontinue with installation? (y/N) ")
        except EOFError:
            reply = ""
        if reply[:1] in ("y", "Y"):
            return PROCEED
        return ConflictDecision(proceed=False, exit_code=1, message="Installation cancelled")

    return ConflictDecision(
        proceed=False,
        exit_code=1,
        message=(
            f"{prefix} already exists\n"
            "Use --force to overwrite it, or --skip-existing to keep it."
        ),
    )
