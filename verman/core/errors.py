"""Exceptions raised while installing a version."""

from pathlib import Path


class VermanError(Exception):
    """Base class for install errors reported to the user."""

    exit_code = 1


class UsageError(VermanError):
    """No definition could be resolved or the command was misused."""


class ConflictError(VermanError):
    """Install would overwrite an existing installation."""

    def __init__(self, message: str, prefix: Path):
        self.prefix = prefix
        super().__init__(message)


class HookError(VermanError):
    """Error loading or running an install hook."""

    def __init__(self, message: str, hook_name: str | None = None):
        self.hook_name = hook_name
        super().__init__(message)


class InstallInterrupted(KeyboardInterrupt):
    """Raised from the SIGTERM handler while an install is in progress."""
