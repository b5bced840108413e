"""External builder invocation.

The builder is an opaque executable (``verman-build`` by default) with
this contract:

    verman-build [-k] [-v] [-p] <definition> <prefix> [-- <args>...]
    verman-build --definitions    # one definition name per line
    verman-build --version

Exit status 0 means the prefix is fully populated, 2 means the
definition is unknown, anything else is a build failure.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from verman.config.schemas import InstallOptions, ManagerSettings

logger = logging.getLogger("verman.builder")

DEFINITION_NOT_FOUND_CODE = 2
COMMAND_NOT_FOUND_CODE = 127
INTERRUPTED_CODE = 130

# Environment passed to the builder
ENV_BUILD_PATH = "VERMAN_BUILD_BUILD_PATH"
ENV_CACHE_PATH = "VERMAN_BUILD_CACHE_PATH"
ENV_KEEP = "VERMAN_BUILD_KEEP"
ENV_DEFAULT_VERSION = "VERMAN_VERSION"


class BuilderError(Exception):
    """Error running a builder catalog query."""

    def __init__(self, message: str, exit_code: int | None = None):
        self.exit_code = exit_code
        super().__init__(message)


class BuildStatus(Enum):
    """Classification of a builder exit status."""

    SUCCESS = "success"
    DEFINITION_NOT_FOUND = "definition-not-found"
    BUILD_FAILURE = "build-failure"
    INTERRUPTED = "interrupted"

    @classmethod
    def from_exit_code(cls, code: int) -> BuildStatus:
        if code == 0:
            return cls.SUCCESS
        if code == DEFINITION_NOT_FOUND_CODE:
            return cls.DEFINITION_NOT_FOUND
        # Negative codes come from subprocess when the child died on a signal
        if code == INTERRUPTED_CODE or code < 0:
            return cls.INTERRUPTED
        return cls.BUILD_FAILURE


@dataclass(frozen=True)
class BuildResult:
    """Result of a builder run."""

    exit_code: int
    status: BuildStatus

    @classmethod
    def from_exit_code(cls, code: int) -> BuildResult:
        status = BuildStatus.from_exit_code(code)
        if code < 0:
            # Killed by signal N: report it the way a shell would
            code = 128 - code
        return cls(exit_code=code, status=status)

    @property
    def success(self) -> bool:
        return self.status is BuildStatus.SUCCESS


class BuildInvoker:
    """Runs the external builder.

    ``invoke`` never raises for a failed build; the builder's exit status
    is classified into a BuildResult.
    """

    def __init__(self, settings: ManagerSettings):
        self.settings = settings

    @property
    def executable(self) -> str:
        return self.settings.builder

    def build_args(self, definition: str, prefix: Path, options: InstallOptions) -> list[str]:
        """Build the builder command line for an install.

        Args:
            definition: Definition to build
            prefix: Install prefix
            options: Install options

        Returns:
            Full argument list including the builder executable
        """
        args = [self.executable]
        if options.keep:
            args.append("-k")
        if options.verbose:
            args.append("-v")
        if options.patch:
            args.append("-p")
        args.extend([definition, str(prefix)])
        if options.extra_args:
            args.append("--")
            args.extend(options.extra_args)
        return args

    def invoke(
        self,
        definition: str,
        prefix: Path,
        options: InstallOptions,
        env: dict[str, str] | None = None,
    ) -> BuildResult:
        """Run the builder for a definition.

        Standard streams are inherited so build output streams live and a
        patch can be read from stdin.

        Args:
            definition: Definition to build
            prefix: Install prefix
            options: Install options
            env: Extra environment variables for the builder

        Returns:
            BuildResult with the classified exit status
        """
        args = self.build_args(definition, prefix, options)
        child_env = dict(os.environ)
        if env:
            child_env.update(env)

        logger.info("Running builder: %s", " ".join(args))
        try:
            completed = subprocess.run(args, env=child_env, check=False)
        except FileNotFoundError:
            logger.error("Builder not found: %s", self.executable)
            return BuildResult.from_exit_code(COMMAND_NOT_FOUND_CODE)
        except KeyboardInterrupt:
            logger.warning("Build interrupted")
            return BuildResult.from_exit_code(INTERRUPTED_CODE)

        result = BuildResult.from_exit_code(completed.returncode)
        logger.debug("Builder exited with %d (%s)", result.exit_code, result.status.value)
        return result

    def _query(self, *args: str) -> subprocess.CompletedProcess[str]:
        """Run a builder catalog query and capture its output."""
        cmd = [self.executable, *args]
        logger.debug("Running builder query: %s", " ".join(cmd))
        try:
            return subprocess.run(cmd, capture_output=True, text=True, check=False)
        except FileNotFoundError as e:
            raise BuilderError(
                f"Builder not found: {self.executable}", exit_code=COMMAND_NOT_FOUND_CODE
            ) from e

    def definitions(self) -> list[str]:
        """List every definition known to the builder, in builder order.

        Raises:
            BuilderError: If the builder cannot be run or fails
        """
        result = self._query("--definitions")
        if result.returncode != 0:
            raise BuilderError(
                f"Cannot list definitions: {result.stderr.strip() or 'builder failed'}",
                exit_code=result.returncode,
            )
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def builder_version(self) -> tuple[int, str]:
        """Get the builder's own version output.

        Returns:
            (exit code, output) tuple

        Raises:
            BuilderError: If the builder cannot be run
        """
        result = self._query("--version")
        return result.returncode, (result.stdout or result.stderr).strip()
