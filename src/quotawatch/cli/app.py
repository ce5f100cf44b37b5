"""Main CLI application for quotawatch."""

from __future__ import annotations

import logging
from enum import IntEnum

import typer
from rich.console import Console
from rich.logging import RichHandler

from quotawatch.cli.atyper import ATyper

# Create the main app
app = ATyper(
    name="quotawatch",
    help="Watch usage quotas of AI coding assistants",
    add_completion=True,
    no_args_is_help=True,
)


class ExitCode(IntEnum):
    """Exit codes for quotawatch."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    AUTH_ERROR = 2
    NETWORK_ERROR = 3
    CONFIG_ERROR = 4
    PARTIAL_FAILURE = 5


def configure_logging(verbose: bool) -> None:
    """Send library logs through rich on stderr."""
    root = logging.getLogger("quotawatch")
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=verbose,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root.propagate = False


def _show_version(value: bool) -> None:
    if value:
        from quotawatch import __version__

        typer.echo(f"quotawatch {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    json: bool = typer.Option(False, "--json", "-j", help="Enable JSON output mode"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log fetch details to stderr"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
        callback=_show_version,
        is_eager=True,
    ),
) -> None:
    """Quotawatch - watch usage quotas of AI coding assistants."""
    configure_logging(verbose)

    ctx.meta["json"] = json
    ctx.meta["verbose"] = verbose


def run_app() -> None:
    """Run the CLI app."""
    app()


# Import command modules - they register themselves via @app.command() decorators
from quotawatch.cli.commands import credentials  # noqa: E402, F401
from quotawatch.cli.commands import probe  # noqa: E402, F401
from quotawatch.cli.commands import usage  # noqa: E402, F401
from quotawatch.cli.commands import watch  # noqa: E402, F401
