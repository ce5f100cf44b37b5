"""Polling watch command for quotawatch."""

from __future__ import annotations

from datetime import datetime

import typer
from rich.console import Console, Group
from rich.live import Live
from rich.text import Text

from quotawatch.cli.app import ExitCode
from quotawatch.cli.app import app
from quotawatch.cli.commands.usage import create_providers
from quotawatch.cli.display import ProviderPanel
from quotawatch.core.http import cleanup
from quotawatch.core.store import ProviderState
from quotawatch.core.store import UsageStore
from quotawatch.notifications import ConsoleNotifier


def render_states(states: dict[str, ProviderState], updated: datetime | None = None) -> Group:
    panels = [ProviderPanel.from_state(state) for state in states.values()]
    footer = Text("Waiting for first refresh…", style="dim")
    if updated is not None:
        footer = Text(f"Updated {updated:%H:%M:%S} · Ctrl-C to stop", style="dim")
    return Group(*panels, footer)


@app.command("watch")
async def watch_command(
    interval: float = typer.Option(
        None,
        "--interval",
        "-i",
        min=5.0,
        help="Seconds between refreshes (default: fetch.poll_interval)",
    ),
) -> None:
    """Poll enabled providers and report session quota changes."""
    console = Console()
    store = UsageStore(create_providers(), notifier=ConsoleNotifier())

    if not store.enabled_provider_ids():
        console.print("[yellow]No providers are enabled[/yellow]")
        raise typer.Exit(ExitCode.CONFIG_ERROR)

    with Live(render_states({}), console=console, auto_refresh=False) as live:

        def on_refresh(states: dict[str, ProviderState]) -> None:
            live.update(render_states(states, datetime.now()), refresh=True)

        try:
            await store.run_forever(interval, on_refresh=on_refresh)
        finally:
            await store.close()
            await cleanup()
