"""Main CLI application for Verman."""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from typer.core import TyperCommand

from verman import __version__
from verman.config.parser import ConfigError, load_settings
from verman.config.schemas import InstallOptions, ManagerSettings
from verman.core.builder import BuilderError, BuildInvoker, BuildStatus
from verman.core.errors import UsageError, VermanError
from verman.core.hooks import load_hooks
from verman.core.installer import InstallOrchestrator
from verman.core.shims import RehashError, rehash
from verman.core.versions import global_version, installed_versions
from verman.utils.version import latest_per_series

# Create the main Typer app
app = typer.Typer(
    name="verman",
    help="Runtime version manager",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

# Set up logger for the verman package
logger = logging.getLogger("verman")

# ctx.meta key holding the arguments given after "--"
BUILDER_ARGS_KEY = "verman.builder_args"


def setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbosity: 0=WARNING, 1=INFO, 2+=DEBUG
    """
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logger.setLevel(level)

    # Only add handler if not already configured
    if not logger.handlers:
        handler = RichHandler(
            console=error_console,
            show_time=verbosity >= 2,
            show_path=verbosity >= 3,
            rich_tracebacks=True,
        )
        handler.setLevel(level)
        logger.addHandler(handler)
    else:
        for h in logger.handlers:
            h.setLevel(level)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]Error:[/red] {escape(message)}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {escape(message)}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    error_console.print(f"[yellow]⚠[/yellow] {escape(message)}")


def get_settings() -> ManagerSettings:
    """Load manager settings, exiting on invalid configuration.

    ``debug`` from config.yaml or VERMAN_DEBUG raises logging to debug level.
    """
    try:
        settings = load_settings()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1) from e
    if settings.debug and logger.getEffectiveLevel() > logging.DEBUG:
        setup_logging(2)
    return settings


def list_definitions(settings: ManagerSettings) -> list[str]:
    """Get the builder's definition catalog, exiting if it cannot be read."""
    try:
        return BuildInvoker(settings).definitions()
    except BuilderError as e:
        print_error(str(e))
        raise typer.Exit(e.exit_code or 1) from e


def confirm(question: str) -> str:
    """Ask the user a question on the terminal."""
    return console.input(escape(question))


@app.callback()
def callback(
    debug: Annotated[
        int,
        typer.Option(
            "--debug",
            "-d",
            count=True,
            help="Increase log output (-d info, -dd debug)",
        ),
    ] = 0,
) -> None:
    """Verman - runtime version manager."""
    setup_logging(debug)


class InstallCommand(TyperCommand):
    """Command that keeps everything after ``--`` for the builder.

    Click drops the ``--`` separator while parsing, so the tail is split
    off first and stored in ``ctx.meta``. Anything else left over ends up
    in ``ctx.args`` and is rejected by the command.
    """

    def parse_args(self, ctx: typer.Context, args: list[str]) -> list[str]:
        if "--" in args:
            index = args.index("--")
            ctx.meta[BUILDER_ARGS_KEY] = args[index + 1 :]
            args = args[:index]
        return super().parse_args(ctx, args)


def usage_error(message: str) -> typer.Exit:
    """Report a usage error for the install command."""
    print_error(message)
    error_console.print("Run 'verman install --help' for usage")
    return typer.Exit(1)


@app.command()
def version() -> None:
    """Show the Verman version."""
    console.print(f"verman {__version__}")


@app.command(
    cls=InstallCommand,
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def install(
    ctx: typer.Context,
    definition: Annotated[
        str | None,
        typer.Argument(
            help="Version or definition file to install (defaults to the local version)",
        ),
    ] = None,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Install even if the version appears to be installed already",
        ),
    ] = False,
    skip_existing: Annotated[
        bool,
        typer.Option(
            "--skip-existing",
            "-s",
            help="Skip if the version appears to be installed already",
        ),
    ] = False,
    keep: Annotated[
        bool,
        typer.Option(
            "--keep",
            "-k",
            help="Keep the source tree after installation",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Stream build output",
        ),
    ] = False,
    patch: Annotated[
        bool,
        typer.Option(
            "--patch",
            "-p",
            help="Apply a patch from stdin before building",
        ),
    ] = False,
    build_root: Annotated[
        Path | None,
        typer.Option(
            "--build-root",
            "-b",
            help="Keep source trees under this directory (implies --keep)",
        ),
    ] = None,
    list_stable: Annotated[
        bool,
        typer.Option(
            "--list",
            "-l",
            help="List the latest stable release of each series",
        ),
    ] = False,
    list_all: Annotated[
        bool,
        typer.Option(
            "--list-all",
            "-L",
            help="List all available versions",
        ),
    ] = False,
    builder_version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show the builder's version",
        ),
    ] = False,
) -> None:
    """Install a version.

    Without a DEFINITION, installs the version selected by VERMAN_VERSION
    or the nearest .verman-version file.

    Existing installations are only replaced with --force. With
    --skip-existing an installed version is left alone and the command
    succeeds; otherwise you are asked to confirm, or the command fails
    when not run from a terminal.

    Arguments after '--' are passed to the builder unchanged.
    """
    if definition and definition.startswith("-"):
        raise usage_error(f"Unknown option: {definition}")
    if ctx.args:
        raise usage_error(f"Unexpected argument: {ctx.args[0]}")
    extra_args: list[str] = ctx.meta.get(BUILDER_ARGS_KEY, [])

    settings = get_settings()

    if builder_version:
        try:
            code, output = BuildInvoker(settings).builder_version()
        except BuilderError as e:
            print_error(str(e))
            raise typer.Exit(e.exit_code or 1) from e
        if output:
            console.print(output, markup=False, highlight=False)
        raise typer.Exit(code)

    if list_stable:
        console.print("Available versions:")
        for name in latest_per_series(list_definitions(settings)):
            console.print(f"  {name}", markup=False, highlight=False)
        return

    if list_all:
        console.print("Available versions:")
        for name in list_definitions(settings):
            console.print(f"  {name}", markup=False, highlight=False)
        return

    options = InstallOptions(
        force=force,
        skip_existing=skip_existing,
        keep=keep,
        verbose=verbose,
        patch=patch,
        build_root=build_root.resolve() if build_root else None,
        extra_args=extra_args,
    )

    try:
        hooks = load_hooks(settings.hook_dirs)
        orchestrator = InstallOrchestrator(
            settings,
            hooks=hooks,
            confirm=confirm,
            error_console=error_console,
        )
        outcome = orchestrator.run(definition, options)
    except UsageError as e:
        raise usage_error(str(e)) from e
    except VermanError as e:
        print_error(str(e))
        raise typer.Exit(e.exit_code) from e
    except KeyboardInterrupt as e:
        print_warning("Installation interrupted")
        raise typer.Exit(130) from e

    if outcome.skipped:
        logger.info("%s is already installed, skipping", outcome.version_name)
        return

    if outcome.status is BuildStatus.SUCCESS:
        print_success(f"Installed {outcome.version_name} to {outcome.prefix}")
        if outcome.suggest_global:
            console.print()
            console.print(
                f"Run 'verman global {outcome.version_name}' to make it the default version",
                markup=False,
            )
        return

    if outcome.status is BuildStatus.INTERRUPTED:
        print_warning("Installation interrupted")
    elif outcome.status is BuildStatus.BUILD_FAILURE:
        print_error(f"Failed to install {outcome.version_name} (builder exit {outcome.exit_code})")
    raise typer.Exit(outcome.exit_code)


@app.command("versions")
def list_versions() -> None:
    """List installed versions."""
    settings = get_settings()
    versions = installed_versions(settings)

    if not versions:
        console.print("No versions installed")
        return

    default = global_version(settings)

    table = Table(title="Installed Versions")
    table.add_column("Version", style="cyan")
    table.add_column("Default", style="green")
    table.add_column("Path", style="dim")

    for name in versions:
        table.add_row(name, "*" if name == default else "", str(settings.versions_dir / name))

    console.print(table)


@app.command("rehash")
def rehash_command() -> None:
    """Regenerate shims for installed entry points."""
    settings = get_settings()
    try:
        names = rehash(settings)
    except (RehashError, OSError) as e:
        print_error(f"Rehash failed: {e}")
        raise typer.Exit(1) from e
    print_success(f"Rehashed {len(names)} shim(s)")


if __name__ == "__main__":
    app()
