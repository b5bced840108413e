"""Local and global version lookup."""

import logging
import os
from pathlib import Path

from verman.config.schemas import ManagerSettings

logger = logging.getLogger("verman.versions")

LOCAL_VERSION_FILENAME = ".verman-version"
SYSTEM_VERSION = "system"


def read_version_file(path: Path) -> str | None:
    """Read the first version named in a version file.

    Blank lines and lines starting with "#" are skipped.

    Args:
        path: Path to the version file

    Returns:
        The version name, or None if the file is missing or empty
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        return None

    for line in content.splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            return line.split()[0]
    return None


def find_local_version_file(start_path: Path | None = None) -> Path | None:
    """Find the nearest .verman-version file.

    Args:
        start_path: Directory to start searching from (defaults to cwd)

    Returns:
        Path to the version file, or None if not found
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()
    while current != current.parent:
        if (current / LOCAL_VERSION_FILENAME).is_file():
            return current / LOCAL_VERSION_FILENAME
        current = current.parent

    # Check root
    if (current / LOCAL_VERSION_FILENAME).is_file():
        return current / LOCAL_VERSION_FILENAME

    return None


def local_version(
    start_path: Path | None = None,
    environ: dict[str, str] | None = None,
) -> str | None:
    """Get the locally selected version.

    VERMAN_VERSION takes precedence over a .verman-version file found in
    the current directory or any parent.
    """
    if environ is None:
        environ = dict(os.environ)

    value = environ.get("VERMAN_VERSION", "").strip()
    if value:
        logger.debug("Local version from VERMAN_VERSION: %s", value)
        return value.split()[0]

    version_file = find_local_version_file(start_path)
    if version_file is None:
        return None

    version = read_version_file(version_file)
    logger.debug("Local version from %s: %s", version_file, version)
    return version


def global_version(settings: ManagerSettings) -> str | None:
    """Get the global default version, or None if not set.

    The placeholder "system" counts as not set.
    """
    version = read_version_file(settings.version_file)
    if version == SYSTEM_VERSION:
        return None
    return version


def installed_versions(settings: ManagerSettings) -> list[str]:
    """List installed version names, sorted by name."""
    if not settings.versions_dir.is_dir():
        return []
    return sorted(p.name for p in settings.versions_dir.iterdir() if is_installed(p))


def is_installed(prefix: Path) -> bool:
    """Check whether a prefix holds a completed installation."""
    return (prefix / "bin").is_dir()
