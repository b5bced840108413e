"""Install hook registry and hook script discovery.

Hook scripts are Python files found under ``<hook dir>/install/*.py``.
Each script defines a ``register`` function that receives the
HookRegistry for the current run:

    def register(hooks):
        @hooks.before
        def announce(context):
            print(f"Installing {context.version_name}")

Hooks run in three phases:
- resolve: after the definition is known, before the install prefix is
  computed. The only phase in which ``context.version_name`` may change.
- before: before the builder runs.
- after: after the builder finishes, whatever its status.
"""

from __future__ import annotations

import importlib.util
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from verman.core.errors import HookError

if TYPE_CHECKING:
    from verman.core.installer import InstallContext

logger = logging.getLogger("verman.hooks")

HookPhase = Literal["resolve", "before", "after"]
HOOK_PHASES: tuple[HookPhase, ...] = ("resolve", "before", "after")

HookFunc = Callable[["InstallContext"], object]


@dataclass(frozen=True)
class Hook:
    """A registered hook action."""

    name: str
    func: HookFunc
    source: Path | None = None


class HookRegistry:
    """Ordered hook lists for one install run."""

    def __init__(self) -> None:
        self._hooks: dict[HookPhase, list[Hook]] = {phase: [] for phase in HOOK_PHASES}
        self._current_source: Path | None = None

    def add(self, phase: HookPhase, func: HookFunc, name: str | None = None) -> HookFunc:
        """Register a hook for a phase.

        Args:
            phase: One of "resolve", "before", "after"
            func: Callable receiving the InstallContext
            name: Display name (defaults to the function's qualified name)

        Returns:
            The function, so this can back a decorator

        Raises:
            ValueError: If the phase is unknown
        """
        if phase not in self._hooks:
            available = ", ".join(HOOK_PHASES)
            raise ValueError(f"Unknown hook phase: {phase}. Available phases: {available}")

        hook = Hook(
            name=name or getattr(func, "__qualname__", repr(func)),
            func=func,
            source=self._current_source,
        )
        self._hooks[phase].append(hook)
        logger.debug("Registered %s hook %s", phase, hook.name)
        return func

    def resolve(self, func: HookFunc) -> HookFunc:
        """Decorator registering a resolve-phase hook."""
        return self.add("resolve", func)

    def before(self, func: HookFunc) -> HookFunc:
        """Decorator registering a before-install hook."""
        return self.add("before", func)

    def after(self, func: HookFunc) -> HookFunc:
        """Decorator registering an after-install hook."""
        return self.add("after", func)

    def get(self, phase: HookPhase) -> list[Hook]:
        """Get the hooks for a phase in execution order."""
        return list(self._hooks[phase])

    def run(self, phase: HookPhase, context: InstallContext) -> None:
        """Run every hook of a phase in registration order.

        The first failing hook stops the phase.

        Raises:
            HookError: If a hook raises an exception
        """
        for hook in self._hooks[phase]:
            logger.info("Running %s hook: %s", phase, hook.name)
            try:
                hook.func(context)
            except HookError:
                raise
            except Exception as e:
                raise HookError(f"{phase} hook {hook.name} failed: {e}", hook_name=hook.name) from e

    def __len__(self) -> int:
        return sum(len(hooks) for hooks in self._hooks.values())

    def __repr__(self) -> str:
        counts = ", ".join(f"{phase}={len(hooks)}" for phase, hooks in self._hooks.items())
        return f"HookRegistry({counts})"


def discover_hook_scripts(hook_dirs: Iterable[Path], command: str = "install") -> list[Path]:
    """Find hook scripts for a command.

    Args:
        hook_dirs: Directories to search, in priority order
        command: Command subdirectory to look in

    Returns:
        Script paths in directory order, then file name order
    """
    scripts: list[Path] = []
    seen: set[Path] = set()
    for hook_dir in hook_dirs:
        command_dir = hook_dir / command
        if not command_dir.is_dir():
            continue
        for script in sorted(command_dir.glob("*.py")):
            resolved = script.resolve()
            if resolved in seen:
                continue
            seen.add(resolved)
            scripts.append(script)

    logger.debug("Discovered %d %s hook script(s)", len(scripts), command)
    return scripts


def load_hook_script(path: Path, registry: HookRegistry) -> None:
    """Load a hook script and call its ``register`` function.

    Raises:
        HookError: If the script cannot be imported or has no register()
    """
    module_name = f"verman_hooks.{path.parent.name}.{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise HookError(f"Cannot load hook script: {path}")

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise HookError(f"Error loading hook script {path}: {e}") from e

    register = getattr(module, "register", None)
    if not callable(register):
        raise HookError(f"Hook script {path} does not define register(hooks)")

    registry._current_source = path
    try:
        register(registry)
    except HookError:
        raise
    except Exception as e:
        raise HookError(f"Error registering hooks from {path}: {e}") from e
    finally:
        registry._current_source = None


def load_hooks(hook_dirs: Iterable[Path], command: str = "install") -> HookRegistry:
    """Build a HookRegistry from the hook scripts of a command."""
    registry = HookRegistry()
    for script in discover_hook_scripts(hook_dirs, command):
        logger.info("Loading hook script: %s", script)
        load_hook_script(script, registry)
    return registry
