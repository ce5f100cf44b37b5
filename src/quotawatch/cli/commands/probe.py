"""Debug probe command: show every attempt behind a provider fetch."""

from __future__ import annotations

import msgspec
import typer
from rich.console import Console

from quotawatch.cli.app import ExitCode
from quotawatch.cli.app import app
from quotawatch.cli.commands.usage import check_provider
from quotawatch.cli.commands.usage import create_providers
from quotawatch.cli.commands.usage import exit_code_for
from quotawatch.cli.commands.usage import fetch_usage
from quotawatch.cli.display import ProviderPanel
from quotawatch.cli.display import attempts_table
from quotawatch.core.store import UsageStore
from quotawatch.display.json import outcome_data
from quotawatch.display.json import output_json_pretty


@app.command("probe")
async def probe_command(
    ctx: typer.Context,
    provider: str = typer.Argument(..., help="Provider to probe"),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Fetch one provider and print attempts, sources and diagnostics."""
    console = Console()
    check_provider(console, provider)

    store = UsageStore(create_providers())
    [outcome] = await fetch_usage(store, [provider])

    if json_output or ctx.meta.get("json", False):
        output_json_pretty(outcome_data(outcome, include_attempts=True))
    else:
        console.print(attempts_table(outcome.attempts))
        for attempt in outcome.attempts:
            if attempt.diagnostics:
                console.print(f"[bold]{attempt.strategy}[/bold] diagnostics:")
                console.print_json(msgspec.json.encode(attempt.diagnostics).decode())
        console.print(ProviderPanel.from_outcome(outcome))

    code = exit_code_for([outcome])
    if code is not ExitCode.SUCCESS:
        raise typer.Exit(code)
