"""Tests for terminal text helpers."""

from __future__ import annotations

import pytest

from quotawatch.probes.text import clean_reset
from quotawatch.probes.text import first_line
from quotawatch.probes.text import first_match
from quotawatch.probes.text import first_number
from quotawatch.probes.text import remaining_percent_from_line
from quotawatch.probes.text import reset_from_line
from quotawatch.probes.text import strip_ansi


class TestStripAnsi:
    """Tests for strip_ansi."""

    def test_removes_csi_and_osc(self):
        """Colour codes, cursor moves and OSC titles are removed."""
        raw = "\x1b[1;32m5h limit\x1b[0m \x1b[2K\x1b]0;codex\x07ok"
        assert strip_ansi(raw) == "5h limit ok"

    def test_normalizes_carriage_returns(self):
        """CR and CRLF become newlines."""
        assert strip_ansi("a\r\nb\rc") == "a\nb\nc"

    def test_drops_control_characters(self):
        """Backspaces and other controls disappear; tabs stay."""
        assert strip_ansi("a\x08b\tc\x00") == "ab\tc"


class TestExtraction:
    """Tests for regex extraction helpers."""

    def test_first_match(self):
        """The first group is returned stripped; no match is None."""
        assert first_match(r"Account:\s+(\S+)", "Account:  me@example.com ") == "me@example.com"
        assert first_match(r"Org:\s*(.+)", "nothing") is None

    def test_first_number_with_separators(self):
        """Thousands separators are accepted."""
        assert first_number(r"Credits:\s*([0-9][0-9.,]*)", "Credits: 1,234.5") == 1234.5

    def test_first_number_missing_is_none(self):
        """An unmatched field is None, never 0."""
        assert first_number(r"Credits:\s*([0-9]+)", "no credits here") is None

    def test_first_line(self):
        """The whole matching line is returned."""
        text = "header\n5h limit: 63% left (resets 14:32)\nWeekly limit: 90% left"
        assert first_line(r"5h limit[^\n]*", text) == "5h limit: 63% left (resets 14:32)"


class TestPercentLines:
    """Tests for remaining_percent_from_line."""

    @pytest.mark.parametrize(
        "line,expected",
        [
            ("63% left", 63.0),
            ("37% used", 63.0),
            ("12.5 % remaining", 12.5),
            ("100% spent", 0.0),
            ("0% used", 100.0),
            ("45 % available", 45.0),
        ],
    )
    def test_keywords(self, line, expected):
        """Used lines are inverted; left lines are taken as-is."""
        assert remaining_percent_from_line(line) == pytest.approx(expected)

    def test_no_keyword_ignored(self):
        """A bare percentage is ignored unless remaining is assumed."""
        assert remaining_percent_from_line("[████] 40%") is None
        assert remaining_percent_from_line("[████] 40%", assume_remaining=True) == 40.0

    def test_no_percent(self):
        """Lines without a percent sign give None."""
        assert remaining_percent_from_line("Weekly limit") is None


class TestResetLines:
    """Tests for reset extraction."""

    def test_reset_from_line(self):
        """The reset tail is kept and the closing parenthesis trimmed."""
        assert reset_from_line("5h limit: 63% left (resets 14:32)") == "resets 14:32"

    def test_reset_balances_parenthesis(self):
        """A timezone in parentheses stays balanced."""
        assert reset_from_line("Resets 5pm (Europe/Berlin)") == "Resets 5pm (Europe/Berlin)"

    def test_no_reset(self):
        """Lines without a reset give None."""
        assert reset_from_line("63% left") is None

    def test_clean_reset(self):
        """Surrounding spaces and a dangling paren are handled."""
        assert clean_reset("  resets 14:32) ") == "resets 14:32"
