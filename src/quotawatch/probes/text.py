"""Text helpers for scraping terminal output."""

from __future__ import annotations

import re

from quotawatch.models import clamp_percent

# CSI sequences, OSC sequences (BEL or ST terminated), and lone escapes.
ANSI_PATTERN = re.compile(
    r"\x1b\[[0-?]*[ -/]*[@-~]"
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"
    r"|\x1b[@-Z\\-_]"
)
CONTROL_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

# Optional Unicode space separators before the percent sign.
PERCENT_PATTERN = re.compile(r"([0-9]{1,3}(?:\.[0-9]+)?)[^\S\r\n]*%")

USED_KEYWORDS = ("used", "spent", "consumed")
REMAINING_KEYWORDS = ("left", "remaining", "available")


def strip_ansi(text: str) -> str:
    """Remove terminal escape sequences and stray control characters."""
    text = ANSI_PATTERN.sub("", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return CONTROL_PATTERN.sub("", text)


def first_match(pattern: str, text: str, flags: int = 0) -> str | None:
    """First capture group of ``pattern`` in ``text``, or None."""
    match = re.search(pattern, text, flags)
    if match is None:
        return None
    return match.group(1).strip()


def first_number(pattern: str, text: str) -> float | None:
    """First capture group parsed as a number; thousands separators allowed."""
    raw = first_match(pattern, text)
    if raw is None:
        return None
    try:
        return float(raw.replace(",", ""))
    except ValueError:
        return None


def first_line(pattern: str, text: str) -> str | None:
    """First line (the whole match) matching ``pattern``."""
    match = re.search(pattern, text)
    return match.group(0) if match else None


def remaining_percent_from_line(
    line: str,
    assume_remaining: bool = False,
) -> float | None:
    """Read a percentage from a line and express it as percent *remaining*.

    "used"/"spent"/"consumed" lines are converted (100 - value);
    "left"/"remaining"/"available" lines are taken as-is. Without either
    keyword the line is ignored unless ``assume_remaining`` is set.
    """
    match = PERCENT_PATTERN.search(line)
    if match is None:
        return None
    value = clamp_percent(float(match.group(1)))
    lower = line.lower()
    if any(word in lower for word in USED_KEYWORDS):
        return clamp_percent(100.0 - value)
    if any(word in lower for word in REMAINING_KEYWORDS):
        return value
    return value if assume_remaining else None


def clean_reset(raw: str) -> str:
    """Trim a reset description and balance a dangling parenthesis."""
    cleaned = raw.strip().strip(" )")
    if cleaned.count("(") > cleaned.count(")"):
        cleaned += ")"
    return cleaned


def reset_from_line(line: str) -> str | None:
    """The "resets ..." part of a line, if any."""
    match = re.search(r"resets?\b", line, re.IGNORECASE)
    if match is None:
        return None
    reset = clean_reset(line[match.start():])
    return reset or None
