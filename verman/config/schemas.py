"""Pydantic schemas for Verman configuration.

This module defines the data models for:
- config.yaml (manager settings under the verman root)
- install options collected from the command line
"""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

# =============================================================================
# Manager Settings
# =============================================================================

DEFAULT_BUILDER = "verman-build"


def default_root() -> Path:
    """Default verman root directory (~/.verman)."""
    return Path.home() / ".verman"


class ManagerSettings(BaseModel):
    """Settings for the version manager.

    Values come from ``<root>/config.yaml`` and are overridden by
    environment variables (see ``verman.config.parser.load_settings``).
    """

    root: Path = Field(default_factory=default_root)
    builder: str = DEFAULT_BUILDER
    build_root: Path | None = None  # Keep source trees under this directory
    cache_path: Path | None = None  # Download cache handed to the builder
    hook_path: list[Path] = Field(default_factory=list)
    debug: bool = False

    @field_validator("hook_path", mode="before")
    @classmethod
    def split_hook_path(cls, value: object) -> object:
        """Accept a colon-separated string as well as a list."""
        if isinstance(value, str):
            return [p for p in value.split(":") if p]
        return value

    @field_validator("build_root", "cache_path")
    @classmethod
    def expand_path(cls, value: Path | None) -> Path | None:
        return value.expanduser() if value is not None else None

    @field_validator("hook_path")
    @classmethod
    def expand_hook_path(cls, value: list[Path]) -> list[Path]:
        return [p.expanduser() for p in value]

    @property
    def versions_dir(self) -> Path:
        """Directory holding one subdirectory per installed version."""
        return self.root / "versions"

    @property
    def shims_dir(self) -> Path:
        """Directory holding generated shims."""
        return self.root / "shims"

    @property
    def version_file(self) -> Path:
        """File holding the global default version."""
        return self.root / "version"

    @property
    def hook_dirs(self) -> list[Path]:
        """All directories searched for hook scripts, in order."""
        return [*self.hook_path, self.root / "hooks"]


# =============================================================================
# Install Options
# =============================================================================


class InstallOptions(BaseModel):
    """Options for a single ``verman install`` run."""

    force: bool = False  # Overwrite an existing installation without prompting
    skip_existing: bool = False  # Succeed silently if already installed
    keep: bool = False  # Keep the build source tree
    verbose: bool = False  # Stream build output
    patch: bool = False  # Apply a patch read from stdin before building
    build_root: Path | None = None  # Custom source tree root (implies keep)
    extra_args: list[str] = Field(default_factory=list)  # Passed after "--"
