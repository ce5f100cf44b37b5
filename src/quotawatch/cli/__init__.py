"""CLI framework for quotawatch."""
from __future__ import annotations

from quotawatch.cli.app import ExitCode
from quotawatch.cli.app import app
from quotawatch.cli.app import run_app

__all__ = ["app", "run_app", "ExitCode"]
