"""Manual cookie header and API token commands for quotawatch."""

from __future__ import annotations

import typer
from rich.console import Console

from quotawatch.auth.cookies import normalize_cookie_header
from quotawatch.auth.tokens import cleaned
from quotawatch.cli.app import ExitCode
from quotawatch.cli.app import app
from quotawatch.cli.commands.usage import check_provider
from quotawatch.config.cookie_cache import CookieHeaderCache
from quotawatch.config.secrets import get_secret_store


def _fail_keyring(console: Console) -> None:
    console.print("[red]Could not write to the system keyring.[/red]")
    console.print(
        "[dim]Check credentials.use_keyring in the config and that a keyring "
        "backend is available.[/dim]"
    )
    raise typer.Exit(ExitCode.CONFIG_ERROR)


@app.command("cookie")
def cookie_command(
    provider: str = typer.Argument(..., help="Provider to store the cookie for"),
    clear: bool = typer.Option(False, "--clear", help="Remove the stored cookie header"),
) -> None:
    """Store a Cookie header copied from the browser's dev tools."""
    console = Console()
    check_provider(console, provider)
    store = get_secret_store()

    if clear:
        if not store.store_cookie_header(provider, None):
            _fail_keyring(console)
        CookieHeaderCache(store).clear(provider)
        console.print(f"[green]✓[/green] Cleared cookie header for {provider}")
        return

    raw = typer.prompt("Cookie header", hide_input=True)
    header = normalize_cookie_header(raw)
    if not header:
        console.print("[red]That does not look like a Cookie header.[/red]")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if not store.store_cookie_header(provider, header):
        _fail_keyring(console)
    CookieHeaderCache(store).clear(provider)
    console.print(f"[green]✓[/green] Stored cookie header for {provider}")


@app.command("key")
def key_command(
    provider: str = typer.Argument(..., help="Provider to store the API key for"),
    clear: bool = typer.Option(False, "--clear", help="Remove the stored API key"),
) -> None:
    """Store an API key in the system keyring."""
    console = Console()
    check_provider(console, provider)
    store = get_secret_store()

    if clear:
        if not store.store_token(provider, None):
            _fail_keyring(console)
        console.print(f"[green]✓[/green] Cleared API key for {provider}")
        return

    token = cleaned(typer.prompt("API key", hide_input=True))
    if not token:
        console.print("[red]Empty API key.[/red]")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if not store.store_token(provider, token):
        _fail_keyring(console)
    console.print(f"[green]✓[/green] Stored API key for {provider}")
