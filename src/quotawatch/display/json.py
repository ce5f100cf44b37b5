"""JSON output utilities for quotawatch."""

from __future__ import annotations

import sys

import msgspec

from quotawatch.errors.types import ClassifiedError
from quotawatch.errors.types import ErrorInfo
from quotawatch.models import UsageSnapshot
from quotawatch.strategies.base import FetchAttempt
from quotawatch.strategies.base import FetchOutcome


class AttemptData(msgspec.Struct, omit_defaults=True):
    strategy: str
    success: bool
    available: bool = True
    source_label: str | None = None
    duration_ms: int = 0
    error: ErrorInfo | None = None
    diagnostics: dict | None = None


class ProviderData(msgspec.Struct, omit_defaults=True):
    """One provider in ``quotawatch usage --json`` output."""

    provider: str
    success: bool
    source: str | None = None
    source_label: str | None = None
    snapshot: UsageSnapshot | None = None
    error: ErrorInfo | None = None
    attempts: list[AttemptData] | None = None


def error_info(error: ClassifiedError | None) -> ErrorInfo | None:
    return error.to_info() if error is not None else None


def attempt_data(attempt: FetchAttempt) -> AttemptData:
    return AttemptData(
        strategy=attempt.strategy,
        success=attempt.success,
        available=attempt.available,
        source_label=attempt.source_label,
        duration_ms=attempt.duration_ms,
        error=error_info(attempt.error),
        diagnostics=attempt.diagnostics,
    )


def outcome_data(outcome: FetchOutcome, include_attempts: bool = False) -> ProviderData:
    return ProviderData(
        provider=outcome.provider_id,
        success=outcome.success,
        source=outcome.source,
        source_label=outcome.source_label,
        snapshot=outcome.snapshot,
        error=error_info(outcome.error),
        attempts=[attempt_data(a) for a in outcome.attempts] if include_attempts else None,
    )


def output_json_pretty(data: object, indent: int = 2) -> None:
    """Output data as pretty-printed JSON to stdout."""
    sys.stdout.write(msgspec.json.format(msgspec.json.encode(data), indent=indent).decode())
    sys.stdout.write("\n")
    sys.stdout.flush()
