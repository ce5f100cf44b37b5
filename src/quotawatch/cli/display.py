"""Rich display components for quotawatch CLI."""

from __future__ import annotations

from rich.console import Console, Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from quotawatch.core.store import ProviderState
from quotawatch.display.rich import format_cost
from quotawatch.display.rich import format_reset
from quotawatch.display.rich import render_usage_bar
from quotawatch.display.rich import window_name
from quotawatch.errors.messages import format_error
from quotawatch.models import UsageSnapshot
from quotawatch.models import usage_to_color
from quotawatch.strategies.base import FetchAttempt
from quotawatch.strategies.base import FetchOutcome


def window_grid(snapshot: UsageSnapshot) -> Table:
    """One row per rate window: name, bar with percentage, reset."""
    grid = Table.grid(padding=(0, 2))
    grid.add_column(min_width=12, justify="left")
    grid.add_column(min_width=26, justify="left")
    grid.add_column(justify="right")

    for window in snapshot.windows():
        color = usage_to_color(window.used_percent)
        bar = render_usage_bar(window.used_percent, color=color)
        bar.append(f" {window.used_percent:>3.0f}%", style=f"bold {color}")
        grid.add_row(Text(window_name(window), style="bold"), bar, format_reset(window))
    return grid


class ProviderPanel:
    """Rich renderable for one provider: its windows, or its error."""

    def __init__(
        self,
        provider_id: str,
        snapshot: UsageSnapshot | None = None,
        error_message: str | None = None,
        source_label: str | None = None,
    ):
        self.provider_id = provider_id
        self.snapshot = snapshot
        self.error_message = error_message
        self.source_label = source_label

    def __rich_console__(self, console: Console, options) -> RenderableType:
        parts: list[RenderableType] = []
        if self.snapshot is not None:
            parts.append(window_grid(self.snapshot))
            if self.snapshot.cost is not None:
                parts.append(format_cost(self.snapshot.cost))
            identity = self.snapshot.identity
            if identity is not None:
                details = [v for v in (identity.email, identity.organization, identity.login_method) if v]
                if details:
                    parts.append(Text(" · ".join(details), style="dim"))
        elif self.error_message:
            parts.append(Text.from_markup(self.error_message))
        else:
            parts.append(Text("No data yet", style="dim"))

        subtitle = f"via {self.source_label}" if self.source_label else None
        yield Panel(
            Group(*parts),
            title=f"[bold]{self.provider_id.title()}[/bold]",
            title_align="left",
            subtitle=subtitle,
            subtitle_align="right",
            border_style="red" if self.snapshot is None and self.error_message else "cyan",
            padding=(0, 1),
        )

    @classmethod
    def from_outcome(cls, outcome: FetchOutcome) -> ProviderPanel:
        return cls(
            outcome.provider_id,
            snapshot=outcome.snapshot,
            error_message=format_error(outcome.error) if outcome.error else None,
            source_label=outcome.source_label,
        )

    @classmethod
    def from_state(cls, state: ProviderState) -> ProviderPanel:
        return cls(
            state.provider_id,
            snapshot=state.snapshot,
            error_message=state.error_message,
            source_label=state.source_label,
        )


def attempts_table(attempts: list[FetchAttempt]) -> Table:
    """Table of every strategy the pipeline considered."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Strategy")
    table.add_column("Result")
    table.add_column("Source")
    table.add_column("Time", justify="right")
    table.add_column("Error")

    for attempt in attempts:
        if not attempt.available:
            result = Text("skipped", style="dim")
        elif attempt.success:
            result = Text("ok", style="green")
        else:
            result = Text("failed", style="red")
        error = ""
        if attempt.error is not None:
            error = f"{attempt.error.kind.value}: {attempt.error}"
        table.add_row(
            attempt.strategy,
            result,
            attempt.source_label or "",
            f"{attempt.duration_ms}ms" if attempt.available else "",
            error,
        )
    return table
