"""Data models for quotawatch.

Every provider, whatever its source (CLI, web page, REST API), normalizes
what it reads into these structures. Usage is always stored as a *used*
percentage; remaining percentages are derived.
"""

from __future__ import annotations

from datetime import datetime
from datetime import timedelta
from enum import StrEnum

import msgspec


def clamp_percent(value: float) -> float:
    """Clamp a percentage into [0, 100]."""
    return max(0.0, min(100.0, float(value)))


class WindowKind(StrEnum):
    """Which quota a rate window describes."""

    SESSION = "session"  # Short rolling window (5 hours for most providers)
    WEEKLY = "weekly"
    MODEL = "model"  # Model-specific weekly window (e.g. Opus)
    CREDITS = "credits"  # Prepaid balance expressed as a percentage


class RateWindow(msgspec.Struct, frozen=True):
    """A single usage window."""

    used_percent: float
    kind: WindowKind = WindowKind.SESSION
    window_minutes: int | None = None
    resets_at: datetime | None = None
    reset_description: str | None = None
    label: str | None = None

    @classmethod
    def create(
        cls,
        used_percent: float,
        kind: WindowKind = WindowKind.SESSION,
        *,
        window_minutes: int | None = None,
        resets_at: datetime | None = None,
        reset_description: str | None = None,
        label: str | None = None,
    ) -> RateWindow:
        """Build a window, clamping the percentage to [0, 100]."""
        return cls(
            used_percent=clamp_percent(used_percent),
            kind=kind,
            window_minutes=window_minutes,
            resets_at=resets_at,
            reset_description=reset_description,
            label=label,
        )

    @classmethod
    def from_remaining(
        cls,
        remaining_percent: float,
        kind: WindowKind = WindowKind.SESSION,
        **kwargs,
    ) -> RateWindow:
        """Build a window from a "% left" reading."""
        return cls.create(100.0 - clamp_percent(remaining_percent), kind, **kwargs)

    def remaining_percent(self) -> float:
        """Return percentage remaining (100 - used)."""
        return 100.0 - self.used_percent

    def time_until_reset(self, now: datetime | None = None) -> timedelta | None:
        """Return time remaining until reset, if the reset time is known."""
        if self.resets_at is None:
            return None
        now = now or datetime.now(self.resets_at.tzinfo)
        return max(timedelta(0), self.resets_at - now)


class ProviderCost(msgspec.Struct, frozen=True):
    """Spend or credit balance reported alongside rate windows."""

    used: float
    limit: float | None = None
    currency: str = "USD"

    def remaining(self) -> float | None:
        if self.limit is None:
            return None
        return max(0.0, self.limit - self.used)


class ProviderIdentity(msgspec.Struct, frozen=True):
    """Account and plan information."""

    email: str | None = None
    organization: str | None = None
    login_method: str | None = None  # Plan or login method (e.g. "Pro", "Balance: $4.20")


class UsageSnapshot(msgspec.Struct, frozen=True):
    """Complete usage snapshot from a provider.

    Snapshots are replaced wholesale on every successful refresh.
    """

    provider: str
    primary: RateWindow
    updated_at: datetime
    secondary: RateWindow | None = None
    tertiary: RateWindow | None = None
    cost: ProviderCost | None = None
    credits: float | None = None  # Remaining prepaid credits, where reported
    identity: ProviderIdentity | None = None

    def windows(self) -> tuple[RateWindow, ...]:
        """Return all present windows in display order."""
        return tuple(
            w for w in (self.primary, self.secondary, self.tertiary) if w is not None
        )

    def session_remaining(self) -> float | None:
        """Remaining percent of the session window, if the primary is one."""
        if self.primary.kind is not WindowKind.SESSION:
            return None
        return self.primary.remaining_percent()


def format_reset_countdown(delta: timedelta | None) -> str:
    """Format reset time as countdown string."""
    if delta is None:
        return ""

    total_seconds = int(delta.total_seconds())
    if total_seconds <= 0:
        return "now"

    days, remainder = divmod(total_seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes = remainder // 60

    if days > 0:
        return f"{days}d {hours}h"
    elif hours > 0:
        return f"{hours}h {minutes}m"
    else:
        return f"{minutes}m"


def usage_to_color(used_percent: float) -> str:
    """Threshold coloring for a used percentage."""
    if used_percent < 50:
        return "green"
    elif used_percent < 80:
        return "yellow"
    else:
        return "red"
