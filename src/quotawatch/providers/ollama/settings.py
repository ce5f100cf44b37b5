"""Parser for the ollama.com settings page."""

from __future__ import annotations

import html
import re
from datetime import datetime

from quotawatch.errors.types import ErrorKind
from quotawatch.models import ProviderIdentity
from quotawatch.models import RateWindow
from quotawatch.models import UsageSnapshot
from quotawatch.models import WindowKind
from quotawatch.parsing import ParseFailure
from quotawatch.parsing import ParseResult
from quotawatch.parsing import ParseSuccess
from quotawatch.parsing import excerpt
from quotawatch.parsing import looks_signed_out

SESSION_LABELS = ("Session usage", "Hourly usage")
WEEKLY_LABELS = ("Weekly usage",)
WINDOW_CHARS = 800

USED_PATTERN = re.compile(r"([0-9]+(?:\.[0-9]+)?)\s*%\s*used", re.IGNORECASE)
WIDTH_PATTERN = re.compile(r"width:\s*([0-9]+(?:\.[0-9]+)?)%")
RESET_PATTERN = re.compile(r'data-time="([^"]+)"')
PLAN_PATTERN = re.compile(r"Cloud Usage\s*</span>\s*<span[^>]*>([^<]+)</span>", re.IGNORECASE)
EMAIL_PATTERN = re.compile(r'id="header-email"[^>]*>([^<]+)<')


class _Block:
    def __init__(self, label: str, text: str) -> None:
        self.label = label
        self.text = text

    def used_percent(self) -> float | None:
        match = USED_PATTERN.search(self.text) or WIDTH_PATTERN.search(self.text)
        return float(match.group(1)) if match else None

    def resets_at(self) -> datetime | None:
        match = RESET_PATTERN.search(self.text)
        if match is None:
            return None
        try:
            return datetime.fromisoformat(match.group(1).replace("Z", "+00:00"))
        except ValueError:
            return None


def _block(page: str, labels: tuple[str, ...]) -> _Block | None:
    for label in labels:
        index = page.find(label)
        if index >= 0:
            return _Block(label, page[index : index + WINDOW_CHARS])
    return None


def _window(block: _Block | None, kind: WindowKind, minutes: int) -> RateWindow | None:
    if block is None:
        return None
    used = block.used_percent()
    if used is None:
        return None
    return RateWindow.create(
        used,
        kind,
        window_minutes=minutes,
        resets_at=block.resets_at(),
        label=block.label,
    )


def parse_identity(page: str) -> ProviderIdentity | None:
    plan = None
    if match := PLAN_PATTERN.search(page):
        plan = html.unescape(match.group(1)).strip() or None
    email = None
    if match := EMAIL_PATTERN.search(page):
        candidate = html.unescape(match.group(1)).strip()
        if "@" in candidate:
            email = candidate
    if plan is None and email is None:
        return None
    return ProviderIdentity(email=email, login_method=plan)


def parse_settings_page(page: str, now: datetime) -> ParseResult:
    """Parse usage bars from the settings page HTML.

    Each usage label is followed by a "N% used" caption or a progress bar
    whose CSS width is the used percent, and a ``data-time`` reset stamp.
    """
    session_block = _block(page, SESSION_LABELS)
    weekly_block = _block(page, WEEKLY_LABELS)

    if session_block is None and weekly_block is None:
        if looks_signed_out(page):
            return ParseFailure(ErrorKind.NOT_AUTHENTICATED, "Ollama session is signed out")
        return ParseFailure(
            ErrorKind.MISSING_USAGE_DATA, "No usage section on the settings page", excerpt(page)
        )

    # Hourly windows are 60 minutes; the newer session window is 5 hours.
    session_minutes = 60 if session_block and session_block.label == "Hourly usage" else 300
    session = _window(session_block, WindowKind.SESSION, session_minutes)
    weekly = _window(weekly_block, WindowKind.WEEKLY, 10080)

    if session is None and weekly is None:
        return ParseFailure(
            ErrorKind.MISSING_USAGE_DATA, "Usage labels without percentages", excerpt(page)
        )

    primary, secondary = (session, weekly) if session is not None else (weekly, None)
    return ParseSuccess(
        UsageSnapshot(
            provider="ollama",
            primary=primary,
            secondary=secondary,
            identity=parse_identity(page),
            updated_at=now,
        )
    )
