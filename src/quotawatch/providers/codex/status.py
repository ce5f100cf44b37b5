"""Parser for the Codex CLI ``/status`` panel."""

from __future__ import annotations

from datetime import datetime

from quotawatch.errors.types import ErrorKind
from quotawatch.models import RateWindow
from quotawatch.models import UsageSnapshot
from quotawatch.models import WindowKind
from quotawatch.parsing import ParseFailure
from quotawatch.parsing import ParseResult
from quotawatch.parsing import ParseSuccess
from quotawatch.parsing import excerpt
from quotawatch.probes.text import first_line
from quotawatch.probes.text import first_number
from quotawatch.probes.text import remaining_percent_from_line
from quotawatch.probes.text import reset_from_line
from quotawatch.probes.text import strip_ansi

CREDITS_PATTERN = r"Credits:\s*([0-9][0-9.,]*)"
FIVE_HOUR_LINE = r"5h limit[^\n]*"
WEEKLY_LINE = r"Weekly limit[^\n]*"


def contains_update_prompt(text: str) -> bool:
    lower = text.lower()
    return "update available" in lower and "codex" in lower


def _window(line: str | None, kind: WindowKind, minutes: int, label: str) -> RateWindow | None:
    if line is None:
        return None
    remaining = remaining_percent_from_line(line, assume_remaining=True)
    if remaining is None:
        return None
    return RateWindow.from_remaining(
        remaining,
        kind,
        window_minutes=minutes,
        reset_description=reset_from_line(line),
        label=label,
    )


def parse_codex_status(text: str, now: datetime) -> ParseResult:
    """Parse the ``/status`` screen into a snapshot.

    Codex prints "% left" values; they are converted to used percent here.
    """
    clean = strip_ansi(text)
    if not clean.strip():
        return ParseFailure(ErrorKind.TIMED_OUT, "Codex printed nothing before the timeout")

    if "data not available yet" in clean.lower():
        return ParseFailure(ErrorKind.PARSE_FAILED, "data not available yet")

    if contains_update_prompt(clean):
        return ParseFailure(
            ErrorKind.BLOCKED_BY_PROMPT,
            "Codex update prompt is blocking /status",
            excerpt(clean),
        )

    credits = first_number(CREDITS_PATTERN, clean)
    five_hour = _window(first_line(FIVE_HOUR_LINE, clean), WindowKind.SESSION, 300, "5h limit")
    weekly = _window(first_line(WEEKLY_LINE, clean), WindowKind.WEEKLY, 10080, "Weekly limit")

    if credits is None and five_hour is None and weekly is None:
        return ParseFailure(
            ErrorKind.PARSE_FAILED,
            "No credits or limits in Codex status output",
            excerpt(clean),
        )

    windows = [w for w in (five_hour, weekly) if w is not None]
    if windows:
        primary, secondary = windows[0], (windows[1] if len(windows) > 1 else None)
    else:
        primary = RateWindow.create(0.0, WindowKind.CREDITS, label="Credits")
        secondary = None

    return ParseSuccess(
        UsageSnapshot(
            provider="codex",
            primary=primary,
            secondary=secondary,
            credits=credits,
            updated_at=now,
        )
    )
