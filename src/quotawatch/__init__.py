"""quotawatch: Watch usage quotas across AI coding assistants."""

from __future__ import annotations

__version__ = "0.1.0"

from quotawatch.models import ProviderCost
from quotawatch.models import ProviderIdentity
from quotawatch.models import RateWindow
from quotawatch.models import UsageSnapshot
from quotawatch.models import WindowKind
from quotawatch.models import clamp_percent
from quotawatch.models import format_reset_countdown

__all__ = [
    "__version__",
    "RateWindow",
    "WindowKind",
    "ProviderCost",
    "ProviderIdentity",
    "UsageSnapshot",
    "clamp_percent",
    "format_reset_countdown",
]


def main() -> None:
    """Entry point for the quotawatch CLI."""
    from quotawatch.cli.app import run_app

    run_app()
