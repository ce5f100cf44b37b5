"""CLI strategy for Claude provider: the ``/usage`` panel."""

from __future__ import annotations

import re
from datetime import datetime

from quotawatch.config.paths import probe_workdir
from quotawatch.errors.types import ErrorKind
from quotawatch.models import ProviderIdentity
from quotawatch.models import RateWindow
from quotawatch.models import UsageSnapshot
from quotawatch.models import WindowKind
from quotawatch.parsing import ParseFailure
from quotawatch.parsing import ParseResult
from quotawatch.parsing import ParseSuccess
from quotawatch.parsing import excerpt
from quotawatch.probes.pty import PTYOptions
from quotawatch.probes.text import first_match
from quotawatch.probes.text import remaining_percent_from_line
from quotawatch.probes.text import reset_from_line
from quotawatch.probes.text import strip_ansi
from quotawatch.strategies.cli import PTYCLIStrategy

SESSION_LABEL = "Current session"
WEEKLY_LABEL = "Current week (all models)"
MODEL_LABELS = ("Current week (Opus)", "Current week (Sonnet only)", "Current week (Sonnet)")
TRUST_PROMPT = "Do you trust the files in this folder?"

PERCENT_WINDOW_LINES = 12
RESET_WINDOW_LINES = 14


def _normalize(text: str) -> str:
    return " ".join(text.lower().split())


class _Panel:
    """Lines of the usage panel with a normalized copy for label search."""

    def __init__(self, text: str) -> None:
        self.lines = text.splitlines()
        self.normalized = [_normalize(line) for line in self.lines]

    def contains(self, label: str) -> bool:
        needle = _normalize(label)
        return any(needle in line for line in self.normalized)

    def percent_after(self, *labels: str) -> float | None:
        for label in labels:
            needle = _normalize(label)
            for index, line in enumerate(self.normalized):
                if needle not in line:
                    continue
                for candidate in self.lines[index : index + PERCENT_WINDOW_LINES]:
                    value = remaining_percent_from_line(candidate)
                    if value is not None:
                        return value
        return None

    def reset_after(self, *labels: str) -> str | None:
        for label in labels:
            needle = _normalize(label)
            for index, line in enumerate(self.normalized):
                if needle not in line:
                    continue
                window = self.lines[index : index + RESET_WINDOW_LINES]
                for offset, candidate in enumerate(window):
                    normalized = self.normalized[index + offset]
                    if offset and normalized.startswith("current ") and needle not in normalized:
                        break
                    reset = reset_from_line(candidate)
                    if reset:
                        return reset
        return None

    def ordered_percents(self) -> list[float]:
        values = []
        for line in self.lines:
            value = remaining_percent_from_line(line, assume_remaining=True)
            if value is not None:
                values.append(value)
        return values


def usage_error(text: str) -> ParseFailure | None:
    """Recognize error screens the CLI shows instead of the panel."""
    lower = text.lower()
    if TRUST_PROMPT.lower() in lower and "current session" not in lower:
        folder = first_match(re.escape(TRUST_PROMPT) + r"\s*\n+\s*([^\n]+)", text)
        detail = "Claude CLI is waiting for a folder trust prompt"
        if folder:
            detail += f" ({folder})"
        return ParseFailure(ErrorKind.BLOCKED_BY_PROMPT, detail, excerpt(text))
    if "token_expired" in lower or "token has expired" in lower:
        return ParseFailure(
            ErrorKind.NOT_AUTHENTICATED, "Claude CLI token expired; run `claude login`"
        )
    if "authentication_error" in lower:
        return ParseFailure(
            ErrorKind.NOT_AUTHENTICATED, "Claude CLI authentication error; run `claude login`"
        )
    if "failed to load usage data" in lower:
        return ParseFailure(
            ErrorKind.PARSE_FAILED, "Claude CLI could not load usage data", excerpt(text)
        )
    return None


def parse_identity(text: str) -> ProviderIdentity | None:
    email = first_match(r"(?i)(?:Account|Email):\s+([^\s@]+@[^\s@]+)", text)
    organization = first_match(r"(?i)(?:Org|Organization):\s*([^\n]+)", text)
    login_method = first_match(r"(?i)login\s+method:\s*([^\n]+)", text)
    if not (email or organization or login_method):
        return None
    return ProviderIdentity(email=email, organization=organization, login_method=login_method)


def parse_claude_usage(text: str, now: datetime) -> ParseResult:
    """Parse the ``/usage`` panel.

    Lines read "N% used" or "N% left"; both are normalized to used percent.
    When labels are present but their percentages moved, values are taken
    in panel order.
    """
    clean = strip_ansi(text)
    if not clean.strip():
        return ParseFailure(ErrorKind.TIMED_OUT, "Claude printed nothing before the timeout")

    if failure := usage_error(clean):
        return failure

    panel = _Panel(clean)
    session = panel.percent_after(SESSION_LABEL)
    weekly = panel.percent_after(WEEKLY_LABEL)
    model = panel.percent_after(*MODEL_LABELS)

    has_weekly = panel.contains(WEEKLY_LABEL)
    has_model = any(panel.contains(label) for label in MODEL_LABELS)

    if session is None or (has_weekly and weekly is None) or (has_model and model is None):
        ordered = panel.ordered_percents()
        if session is None and len(ordered) > 0:
            session = ordered[0]
        if has_weekly and weekly is None and len(ordered) > 1:
            weekly = ordered[1]
        if has_model and model is None and len(ordered) > 2:
            model = ordered[2]

    if session is None:
        return ParseFailure(ErrorKind.PARSE_FAILED, "Missing Current session", excerpt(clean))

    primary = RateWindow.from_remaining(
        session,
        WindowKind.SESSION,
        window_minutes=300,
        reset_description=panel.reset_after(SESSION_LABEL),
        label="Session",
    )
    secondary = None
    if weekly is not None:
        secondary = RateWindow.from_remaining(
            weekly,
            WindowKind.WEEKLY,
            window_minutes=10080,
            reset_description=panel.reset_after(WEEKLY_LABEL),
            label="Weekly",
        )
    tertiary = None
    if model is not None:
        tertiary = RateWindow.from_remaining(
            model,
            WindowKind.MODEL,
            window_minutes=10080,
            reset_description=panel.reset_after(*MODEL_LABELS),
            label="Opus" if panel.contains("Current week (Opus)") else "Sonnet",
        )

    return ParseSuccess(
        UsageSnapshot(
            provider="claude",
            primary=primary,
            secondary=secondary,
            tertiary=tertiary,
            identity=parse_identity(clean),
            updated_at=now,
        )
    )


class ClaudeCLIStrategy(PTYCLIStrategy):
    """Fetch Claude usage by running ``claude`` and typing ``/usage``."""

    binary = "claude"

    def probe_plan(self) -> list[tuple[str, PTYOptions]]:
        return [
            (
                "/usage\r",
                PTYOptions(
                    rows=50,
                    cols=160,
                    timeout=20.0,
                    stop_on_substrings=(
                        "Current session",
                        "Failed to load usage data",
                        "failed to load usage data",
                    ),
                    settle_after_stop=2.0,
                    send_on_substrings={TRUST_PROMPT: "\r"},
                    send_enter_every=0.8,
                    cwd=str(probe_workdir()),
                ),
            )
        ]

    def parse(self, text: str, now: datetime) -> ParseResult:
        return parse_claude_usage(text, now)
