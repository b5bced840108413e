"""Shim generation for installed entry points."""

import logging
import stat
from pathlib import Path

from jinja2 import Environment, TemplateError

from verman.config.schemas import ManagerSettings
from verman.core.versions import installed_versions
from verman.utils.filesystem import ensure_directory, is_executable_file

logger = logging.getLogger("verman.shims")

SHIM_TEMPLATE = """\
#!/usr/bin/env bash
# Generated by verman rehash. Do not edit.
set -e
[ -n "$VERMAN_DEBUG" ] && set -x

root="${VERMAN_ROOT:-{{ root }}}"
version="$VERMAN_VERSION"
if [ -z "$version" ]; then
  dir="$PWD"
  while [ -n "$dir" ]; do
    if [ -f "$dir/.verman-version" ]; then
      read -r version < "$dir/.verman-version" || true
      break
    fi
    dir="${dir%/*}"
  done
fi
if [ -z "$version" ] && [ -f "$root/version" ]; then
  read -r version < "$root/version" || true
fi

program="$root/versions/$version/bin/{{ name }}"
if [ -z "$version" ] || [ "$version" = "system" ] || [ ! -x "$program" ]; then
  echo "verman: {{ name }}: command not found for version '${version:-system}'" >&2
  exit 127
fi
exec "$program" "$@"
"""


class RehashError(Exception):
    """Error regenerating shims."""


def _environment() -> Environment:
    return Environment(
        autoescape=False,  # Shell scripts, not HTML
        keep_trailing_newline=True,
    )


def render_shim(name: str, root: Path) -> str:
    """Render the shim script for an entry point."""
    try:
        template = _environment().from_string(SHIM_TEMPLATE)
        return template.render(name=name, root=str(root))
    except TemplateError as e:
        raise RehashError(f"Cannot render shim for {name}: {e}") from e


def collect_entry_points(settings: ManagerSettings) -> set[str]:
    """Collect executable names from every installed version's bin directory."""
    names: set[str] = set()
    for version in installed_versions(settings):
        bin_dir = settings.versions_dir / version / "bin"
        for entry in bin_dir.iterdir():
            if is_executable_file(entry):
                names.add(entry.name)
    return names


def rehash(settings: ManagerSettings) -> list[str]:
    """Regenerate the shims directory.

    Shims for entry points that no longer exist are removed.

    Returns:
        Sorted list of shim names written
    """
    shims_dir = ensure_directory(settings.shims_dir)

    names = collect_entry_points(settings)

    for existing in shims_dir.iterdir():
        if existing.is_file() and existing.name not in names:
            existing.unlink()
            logger.debug("Removed stale shim: %s", existing.name)

    for name in sorted(names):
        shim_path = shims_dir / name
        shim_path.write_text(render_shim(name, settings.root), encoding="utf-8")
        mode = shim_path.stat().st_mode
        shim_path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    logger.info("Rehashed %d shim(s) in %s", len(names), shims_dir)
    return sorted(names)
