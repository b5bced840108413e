"""Filesystem utilities for Verman."""

import shutil
from pathlib import Path


def ensure_directory(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists

    Returns:
        The directory path
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def remove_directory(path: Path) -> bool:
    """Remove a directory and its contents.

    A symlink or plain file at ``path`` is unlinked rather than followed.

    Args:
        path: Directory path to remove

    Returns:
        True if something was removed, False if nothing existed
    """
    if path.is_symlink() or path.is_file():
        path.unlink()
        return True
    if not path.exists():
        return False
    shutil.rmtree(path)
    return True


def is_executable_file(path: Path) -> bool:
    """Check whether a path is a regular file with an execute bit set."""
    return path.is_file() and bool(path.stat().st_mode & 0o111)
