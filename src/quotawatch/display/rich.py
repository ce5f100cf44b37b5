"""Rich-based rendering utilities for quotawatch."""

from __future__ import annotations

from rich.text import Text

from quotawatch.models import ProviderCost
from quotawatch.models import RateWindow
from quotawatch.models import format_reset_countdown


def render_usage_bar(
    used_percent: float,
    width: int = 20,
    color: str | None = None,
) -> Text:
    """Render a usage progress bar.

    Args:
        used_percent: Usage percentage (0-100)
        width: Bar width in characters
        color: Optional color override

    Returns:
        Rich Text with the progress bar
    """
    filled = int(used_percent * width // 100)
    bar = "█" * filled + "░" * (width - filled)

    text = Text()
    text.append(bar, style=color or "default")
    return text


def window_name(window: RateWindow) -> str:
    return window.label or window.kind.value.title()


def format_reset(window: RateWindow) -> Text:
    """Countdown when the reset time is known, else the provider's wording."""
    text = Text()
    countdown = format_reset_countdown(window.time_until_reset())
    if countdown:
        text.append(f"resets in {countdown}", style="dim")
    elif window.reset_description:
        text.append(window.reset_description, style="dim")
    return text


def format_cost(cost: ProviderCost) -> Text:
    symbol = "$" if cost.currency == "USD" else ""
    text = Text()
    text.append(f"Spent: {symbol}{cost.used:.2f}", style="yellow")
    if cost.limit is not None:
        text.append(f" / {symbol}{cost.limit:.2f}", style="dim")
        text.append(f" ({symbol}{cost.remaining():.2f} remaining)", style="bold yellow")
    return text
