"""Shared fixtures for Verman tests."""

import shutil
import stat
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from verman.config.schemas import InstallOptions, ManagerSettings
from verman.core.builder import BuilderError, BuildResult

SAMPLE_DEFINITIONS = [
    "3.10.13",
    "3.10.14",
    "3.11.8",
    "3.11.9",
    "3.12.3",
    "3.12.4",
    "3.13.0-rc.1",
    "3.13-dev",
    "pypy3.10-7.3.16",
    "miniconda3-3.12-24.1.2",
]

FAKE_BUILDER_SCRIPT = """\
#!/usr/bin/env bash
# Stand-in for verman-build used by the tests.
log="$(dirname "$0")/builder.log"

case "$1" in
  --definitions)
    printf '%s\\n' {definitions}
    exit 0
    ;;
  --version)
    echo "verman-build 20240101"
    exit 0
    ;;
esac

echo "$@" >> "$log"
env | grep '^VERMAN_' | sort > "$(dirname "$0")/builder.env"

while [ "${{1:0:1}}" = "-" ]; do shift; done
definition="$1"
prefix="$2"

case "$definition" in
  missing*)
    echo "definition not found: $definition" >&2
    exit 2
    ;;
  broken*)
    mkdir -p "$prefix/lib"
    echo "partial" > "$prefix/lib/partial.txt"
    exit 1
    ;;
  crash*)
    mkdir -p "$prefix"
    exit 7
    ;;
esac

mkdir -p "$prefix/bin"
printf '#!/bin/sh\\necho %s\\n' "$definition" > "$prefix/bin/runtime"
chmod +x "$prefix/bin/runtime"
exit 0
"""


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory."""
    path = Path(tempfile.mkdtemp(prefix="verman_test_"))
    yield path
    if path.exists():
        shutil.rmtree(path)


@pytest.fixture
def verman_root(temp_dir: Path) -> Path:
    """Create an empty verman root."""
    root = temp_dir / "root"
    (root / "versions").mkdir(parents=True)
    return root


@pytest.fixture
def settings(verman_root: Path) -> ManagerSettings:
    """Settings pointing at the temporary root."""
    return ManagerSettings(root=verman_root, builder="verman-build-test")


@pytest.fixture
def options() -> InstallOptions:
    """Default install options."""
    return InstallOptions()


@pytest.fixture
def make_installed(verman_root: Path) -> Callable[[str], Path]:
    """Create a completed installation under the root."""

    def _make(name: str) -> Path:
        prefix = verman_root / "versions" / name
        bin_dir = prefix / "bin"
        bin_dir.mkdir(parents=True)
        runtime = bin_dir / "runtime"
        runtime.write_text(f"#!/bin/sh\necho {name}\n")
        runtime.chmod(runtime.stat().st_mode | stat.S_IXUSR)
        return prefix

    return _make


class FakeBuilder:
    """In-process stand-in for BuildInvoker.

    ``exit_code`` is returned by invoke(). On success the prefix gets a
    bin/runtime entry point; on failure ``partial`` controls whether a
    half-built prefix is left behind.
    """

    def __init__(
        self,
        definitions: list[str] | None = None,
        exit_code: int = 0,
        partial: bool = True,
    ):
        self.known = list(SAMPLE_DEFINITIONS if definitions is None else definitions)
        self.exit_code = exit_code
        self.partial = partial
        self.calls: list[tuple[str, Path, InstallOptions, dict[str, str]]] = []
        self.events: list[str] | None = None
        self.on_invoke: Callable[[], None] | None = None
        self.fail_definitions = False

    def invoke(
        self,
        definition: str,
        prefix: Path,
        options: InstallOptions,
        env: dict[str, str] | None = None,
    ) -> BuildResult:
        self.calls.append((definition, prefix, options, dict(env or {})))
        if self.events is not None:
            self.events.append("build")
        if self.on_invoke is not None:
            self.on_invoke()

        if self.exit_code == 0:
            bin_dir = prefix / "bin"
            bin_dir.mkdir(parents=True, exist_ok=True)
            runtime = bin_dir / "runtime"
            runtime.write_text(f"#!/bin/sh\necho {definition}\n")
            runtime.chmod(runtime.stat().st_mode | stat.S_IXUSR)
        elif self.partial and self.exit_code != 2:
            (prefix / "lib").mkdir(parents=True, exist_ok=True)
            (prefix / "lib" / "partial.txt").write_text("partial")
        return BuildResult.from_exit_code(self.exit_code)

    def definitions(self) -> list[str]:
        if self.fail_definitions:
            raise BuilderError("builder failed", exit_code=1)
        return list(self.known)


@pytest.fixture
def fake_builder() -> FakeBuilder:
    """An in-process builder that succeeds."""
    return FakeBuilder()


@pytest.fixture
def builder_script(temp_dir: Path) -> Path:
    """Write an executable fake builder script."""
    script = temp_dir / "bin" / "verman-build"
    script.parent.mkdir(parents=True)
    quoted = " ".join(f"'{name}'" for name in SAMPLE_DEFINITIONS)
    script.write_text(FAKE_BUILDER_SCRIPT.format(definitions=quoted))
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the user's verman environment and version files out of tests."""
    for name in (
        "VERMAN_ROOT",
        "VERMAN_VERSION",
        "VERMAN_BUILDER",
        "VERMAN_BUILD_ROOT",
        "VERMAN_CACHE_PATH",
        "VERMAN_HOOK_PATH",
        "VERMAN_DEBUG",
        "VERMAN_BUILD_CACHE_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
