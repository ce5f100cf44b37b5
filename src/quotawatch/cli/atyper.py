"""Typer subclass that accepts ``async def`` commands."""

import asyncio
import inspect
from functools import wraps
from typing import Any, Callable

import typer
from typer.core import TyperCommand


def run_sync(f: Callable) -> Callable:
    """Wrap a coroutine function so click can call it synchronously."""
    if not inspect.iscoroutinefunction(f):
        return f

    @wraps(f)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        return asyncio.run(f(*args, **kwargs))

    return sync_wrapper


class ATyper(typer.Typer):
    """Typer with async command support.

    Each async command gets its own event loop via ``asyncio.run``; the
    shared HTTP client is closed by the command before the loop ends.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("no_args_is_help", False)
        super().__init__(*args, **kwargs)

    def command(  # type: ignore[override]
        self,
        name: str | None = None,
        *,
        cls: type[TyperCommand] | None = None,
        **kwargs: Any,
    ) -> Callable[[Callable], Callable]:
        def decorator(f: Callable) -> Callable:
            typer.Typer.command(self, name, cls=cls, **kwargs)(run_sync(f))
            return f

        return decorator
