"""Usage display commands for quotawatch."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from quotawatch.cli.app import ExitCode
from quotawatch.cli.app import app
from quotawatch.cli.display import ProviderPanel
from quotawatch.core.http import cleanup
from quotawatch.core.store import UsageStore
from quotawatch.display.json import outcome_data
from quotawatch.display.json import output_json_pretty
from quotawatch.errors.types import ErrorKind
from quotawatch.providers import get_all_providers
from quotawatch.providers import list_provider_ids
from quotawatch.strategies.base import FetchOutcome

AUTH_KINDS = frozenset(
    {
        ErrorKind.NOT_AUTHENTICATED,
        ErrorKind.INVALID_CREDENTIALS,
        ErrorKind.NO_CREDENTIAL_CANDIDATES,
    }
)
NETWORK_KINDS = frozenset({ErrorKind.NETWORK, ErrorKind.TIMED_OUT})


def create_providers() -> dict:
    return {pid: cls() for pid, cls in get_all_providers().items()}


def check_provider(console: Console, provider_id: str) -> None:
    """Exit with a config error for an unknown provider id."""
    available = list_provider_ids()
    if provider_id not in available:
        console.print(
            f"[red]Unknown provider:[/red] {provider_id}. "
            f"Available: {', '.join(available)}"
        )
        raise typer.Exit(ExitCode.CONFIG_ERROR)


def exit_code_for(outcomes: list[FetchOutcome]) -> ExitCode:
    failures = [o for o in outcomes if not o.success]
    if not failures:
        return ExitCode.SUCCESS
    if len(failures) < len(outcomes):
        return ExitCode.PARTIAL_FAILURE

    kinds = {o.error.kind for o in failures if o.error is not None}
    if kinds and kinds <= AUTH_KINDS:
        return ExitCode.AUTH_ERROR
    if kinds and kinds <= NETWORK_KINDS:
        return ExitCode.NETWORK_ERROR
    return ExitCode.GENERAL_ERROR


async def fetch_usage(store: UsageStore, provider_ids: list[str]) -> list[FetchOutcome]:
    """Fetch the given providers concurrently, bounded by fetch.max_concurrent."""
    semaphore = asyncio.Semaphore(store.config.fetch.max_concurrent)

    async def bounded(provider_id: str) -> FetchOutcome:
        async with semaphore:
            return await store.fetch_outcome(provider_id)

    try:
        return list(await asyncio.gather(*(bounded(pid) for pid in provider_ids)))
    finally:
        await cleanup()


@app.command("usage")
async def usage_command(
    ctx: typer.Context,
    provider: str = typer.Argument(
        None,
        help="Provider to show (default: all enabled)",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Show usage for all enabled providers or a specific provider."""
    console = Console()
    json_mode = json_output or ctx.meta.get("json", False)

    store = UsageStore(create_providers())
    if provider:
        check_provider(console, provider)
        provider_ids = [provider]
    else:
        provider_ids = store.enabled_provider_ids()

    if not provider_ids:
        console.print("[yellow]No providers are enabled[/yellow]")
        raise typer.Exit(ExitCode.CONFIG_ERROR)

    outcomes = await fetch_usage(store, provider_ids)

    if json_mode:
        output_json_pretty([outcome_data(o) for o in outcomes])
    else:
        for outcome in outcomes:
            console.print(ProviderPanel.from_outcome(outcome))

    code = exit_code_for(outcomes)
    if code is not ExitCode.SUCCESS:
        raise typer.Exit(code)
