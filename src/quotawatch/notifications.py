"""Session quota notifications."""

from __future__ import annotations

import logging
from typing import Protocol

from rich.console import Console

from quotawatch.core.transitions import QuotaTransition
from quotawatch.models import UsageSnapshot
from quotawatch.models import format_reset_countdown

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(
        self,
        provider_id: str,
        transition: QuotaTransition,
        snapshot: UsageSnapshot,
    ) -> None: ...


def describe(provider_id: str, transition: QuotaTransition, snapshot: UsageSnapshot) -> str:
    """One-line message for a quota transition."""
    if transition is QuotaTransition.DEPLETED:
        message = f"{provider_id}: session quota depleted"
        countdown = format_reset_countdown(snapshot.primary.time_until_reset())
        if countdown:
            message += f", resets in {countdown}"
        elif snapshot.primary.reset_description:
            message += f" ({snapshot.primary.reset_description})"
        return message
    return f"{provider_id}: session quota restored"


class LoggingNotifier:
    """Report transitions through the ``quotawatch.notifications`` logger."""

    def notify(
        self,
        provider_id: str,
        transition: QuotaTransition,
        snapshot: UsageSnapshot,
    ) -> None:
        if transition is QuotaTransition.NONE:
            return
        logger.warning(describe(provider_id, transition, snapshot))


class ConsoleNotifier:
    """Print transitions to a rich console."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(stderr=True)

    def notify(
        self,
        provider_id: str,
        transition: QuotaTransition,
        snapshot: UsageSnapshot,
    ) -> None:
        if transition is QuotaTransition.NONE:
            return
        style = "bold red" if transition is QuotaTransition.DEPLETED else "bold green"
        self.console.print(f"[{style}]{describe(provider_id, transition, snapshot)}[/{style}]")
