"""Version installation orchestrator.

This module contains the InstallOrchestrator which coordinates a single
``verman install`` run: it resolves the definition, applies the conflict
policy, runs hooks around the external builder, and rolls back a freshly
created prefix when the build does not succeed.
"""

import logging
import os
import signal
import sys
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from types import FrameType, TracebackType

from rich.console import Console

from verman.config.schemas import InstallOptions, ManagerSettings
from verman.core.advisor import FailureAdvisor
from verman.core.builder import (
    ENV_BUILD_PATH,
    ENV_CACHE_PATH,
    ENV_DEFAULT_VERSION,
    ENV_KEEP,
    BuildInvoker,
    BuildResult,
    BuildStatus,
)
from verman.core.conflict import Confirm, resolve_conflict
from verman.core.errors import ConflictError, HookError, InstallInterrupted, UsageError
from verman.core.hooks import HookRegistry
from verman.core.shims import RehashError, rehash
from verman.core.versions import SYSTEM_VERSION, global_version, local_version
from verman.utils.filesystem import remove_directory

logger = logging.getLogger("verman.installer")


class InstallContext:
    """State of one install run.

    Hooks receive this object. ``version_name`` may only be changed by
    resolve-phase hooks; once the prefix is computed it is frozen.
    """

    def __init__(self, settings: ManagerSettings, options: InstallOptions, hooks: HookRegistry):
        self.settings = settings
        self.options = options
        self.hooks = hooks
        self.definition: str = ""
        self.build_env: dict[str, str] = {}
        self.result: BuildResult | None = None
        self.prefix_preexisted = False
        self._version_name = ""
        self._prefix: Path | None = None

    @property
    def version_name(self) -> str:
        return self._version_name

    @version_name.setter
    def version_name(self, value: str) -> None:
        if self._prefix is not None:
            raise HookError(
                f"Cannot rename version to {value!r}: install prefix {self._prefix} "
                "is already computed (rename from a resolve hook instead)"
            )
        if not value or "/" in value:
            raise HookError(f"Invalid version name: {value!r}")
        self._version_name = value

    @property
    def prefix(self) -> Path:
        if self._prefix is None:
            raise RuntimeError("Install prefix has not been computed yet")
        return self._prefix

    @property
    def prefix_computed(self) -> bool:
        return self._prefix is not None

    @property
    def status(self) -> BuildStatus | None:
        """Status of the build, available to after hooks."""
        return self.result.status if self.result else None

    def compute_prefix(self) -> Path:
        """Compute the install prefix and record whether it already exists.

        Raises:
            RuntimeError: If called twice
        """
        if self._prefix is not None:
            raise RuntimeError("Install prefix is already computed")
        self._prefix = self.settings.versions_dir / self._version_name
        self.prefix_preexisted = self._prefix.exists()
        logger.debug(
            "Install prefix: %s (preexisting: %s)", self._prefix, self.prefix_preexisted
        )
        return self._prefix

    def __repr__(self) -> str:
        return (
            f"InstallContext(definition={self.definition!r}, "
            f"version_name={self._version_name!r})"
        )


@dataclass
class InstallOutcome:
    """Result of an install run."""

    version_name: str
    prefix: Path
    status: BuildStatus
    exit_code: int
    skipped: bool = False
    advice: str | None = None
    suggest_global: bool = False

    @property
    def success(self) -> bool:
        return self.status is BuildStatus.SUCCESS


def rollback(context: InstallContext) -> bool:
    """Remove a prefix created by this run.

    A prefix that existed before the run is never touched.

    Returns:
        True if the prefix was removed
    """
    if not context.prefix_computed or context.prefix_preexisted:
        return False
    removed = remove_directory(context.prefix)
    if removed:
        logger.info("Removed incomplete installation: %s", context.prefix)
    return removed


class PrefixGuard:
    """Rolls back the install prefix unless the build is committed.

    Active for the mutating part of a run. While active, SIGTERM raises
    InstallInterrupted so cleanup also happens when the process is
    terminated; SIGINT already raises KeyboardInterrupt. SIGTERM is ignored
    while the rollback itself runs.
    """

    def __init__(self, context: InstallContext):
        self.context = context
        self.committed = False
        self._previous_handler: Callable[[int, FrameType | None], object] | int | None = None
        self._installed_handler = False

    def commit(self) -> None:
        """Mark the installation as complete so it is kept."""
        self.committed = True

    def _on_sigterm(self, signum: int, frame: FrameType | None) -> None:
        raise InstallInterrupted(f"Received signal {signum}")

    def __enter__(self) -> "PrefixGuard":
        # Signal handlers can only be installed from the main thread
        if threading.current_thread() is threading.main_thread():
            self._previous_handler = signal.signal(signal.SIGTERM, self._on_sigterm)
            self._installed_handler = True
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            if not self.committed:
                if exc_type is not None:
                    logger.debug("Install aborted by %s", exc_type.__name__)
                if self._installed_handler:
                    signal.signal(signal.SIGTERM, signal.SIG_IGN)
                rollback(self.context)
        finally:
            if self._installed_handler:
                previous = self._previous_handler
                signal.signal(signal.SIGTERM, previous if previous is not None else signal.SIG_DFL)
                self._installed_handler = False


def _stdin_is_interactive() -> bool:
    return sys.stdin is not None and sys.stdin.isatty()


class InstallOrchestrator:
    """Coordinates a single version installation.

    Failure classification happens here, after the builder returns. The
    components below only report what they saw.
    """

    def __init__(
        self,
        settings: ManagerSettings,
        hooks: HookRegistry | None = None,
        builder: BuildInvoker | None = None,
        advisor: FailureAdvisor | None = None,
        interactive: bool | None = None,
        confirm: Confirm | None = None,
        error_console: Console | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            settings: Manager settings
            hooks: Hooks for this run (empty registry if None)
            builder: Builder invoker (created from settings if None)
            advisor: Failure advisor (backed by the builder catalog if None)
            interactive: Whether the user can be prompted (defaults to
                stdin being a terminal)
            confirm: Prompt callable for overwrite confirmation
            error_console: Console receiving advisory output
        """
        self.settings = settings
        self.hooks = hooks if hooks is not None else HookRegistry()
        self.builder = builder if builder is not None else BuildInvoker(settings)
        self.advisor = (
            advisor if advisor is not None else FailureAdvisor(self.builder.definitions)
        )
        self.interactive = _stdin_is_interactive() if interactive is None else interactive
        self.confirm = confirm if confirm is not None else input
        self.error_console = error_console or Console(stderr=True)

    def run(self, definition: str | None, options: InstallOptions) -> InstallOutcome:
        """Install a definition.

        Args:
            definition: Definition name or path, or None to use the local version
            options: Install options

        Returns:
            InstallOutcome describing how the run ended

        Raises:
            UsageError: If no definition can be resolved
            ConflictError: If an existing installation blocks the run
            HookError: If a hook fails
        """
        context = InstallContext(self.settings, options, self.hooks)

        context.definition = self.resolve_definition(definition)
        version_name = Path(context.definition).name
        if not version_name:
            raise UsageError(f"Cannot derive a version name from {context.definition!r}")
        context.version_name = version_name
        logger.info("Installing %s as %s", context.definition, context.version_name)

        self.hooks.run("resolve", context)
        prefix = context.compute_prefix()

        decision = resolve_conflict(prefix, options, self.interactive, self.confirm)
        if not decision.proceed:
            if decision.skipped:
                return InstallOutcome(
                    version_name=context.version_name,
                    prefix=prefix,
                    status=BuildStatus.SUCCESS,
                    exit_code=0,
                    skipped=True,
                )
            raise ConflictError(decision.message, prefix)

        self.prepare_build(context)

        advice: str | None = None
        with PrefixGuard(context) as guard:
            self.hooks.run("before", context)

            result = self.builder.invoke(
                context.definition, prefix, context.options, env=context.build_env
            )
            context.result = result
            if result.success:
                guard.commit()

            if result.status is BuildStatus.DEFINITION_NOT_FOUND:
                advice = self.advisor.advise(context.definition)
                self.error_console.print(advice, markup=False, highlight=False, soft_wrap=True)

            self.hooks.run("after", context)

        outcome = InstallOutcome(
            version_name=context.version_name,
            prefix=prefix,
            status=result.status,
            exit_code=result.exit_code,
            advice=advice,
        )

        if outcome.success:
            try:
                rehash(self.settings)
            except (RehashError, OSError) as e:
                logger.warning("Installed %s but rehash failed: %s", context.version_name, e)
            outcome.suggest_global = global_version(self.settings) is None
            logger.info("Installed %s to %s", context.version_name, prefix)
        else:
            logger.info(
                "Install of %s ended with %s (exit %d)",
                context.version_name,
                result.status.value,
                result.exit_code,
            )

        return outcome

    def resolve_definition(self, definition: str | None) -> str:
        """Resolve the definition to build.

        An explicit definition is used as given; otherwise the local
        version is used.

        Raises:
            UsageError: If no definition is given and no local version is set
        """
        if not definition:
            definition = local_version()
            if not definition:
                raise UsageError("No version specified and no local version is set")
            logger.debug("Using local version: %s", definition)
        return definition

    def prepare_build(self, context: InstallContext) -> None:
        """Derive the builder's environment and effective options."""
        env: dict[str, str] = {}
        options = context.options

        build_root = options.build_root or self.settings.build_root
        if build_root is not None:
            if not options.keep:
                options = options.model_copy(update={"keep": True})
            env[ENV_BUILD_PATH] = str(build_root / context.version_name)
            env[ENV_KEEP] = "1"

        if not os.environ.get(ENV_CACHE_PATH):
            if self.settings.cache_path is not None:
                env[ENV_CACHE_PATH] = str(self.settings.cache_path)
            elif (self.settings.root / "cache").is_dir():
                env[ENV_CACHE_PATH] = str(self.settings.root / "cache")

        # Nested tools run by the builder may need a working interpreter
        env[ENV_DEFAULT_VERSION] = global_version(self.settings) or SYSTEM_VERSION

        context.options = options
        context.build_env = env
        logger.debug("Builder environment: %s", env)
