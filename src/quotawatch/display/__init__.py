"""Display utilities for quotawatch.

This module provides rendering and output utilities for both terminal
(Rich-based) and JSON output modes.
"""
from __future__ import annotations

from quotawatch.display.json import outcome_data
from quotawatch.display.json import output_json_pretty
from quotawatch.display.rich import format_cost
from quotawatch.display.rich import format_reset
from quotawatch.display.rich import render_usage_bar

__all__ = [
    # Rich rendering
    "render_usage_bar",
    "format_reset",
    "format_cost",
    # JSON output
    "outcome_data",
    "output_json_pretty",
]
