"""Fetch strategies for quotawatch."""

from __future__ import annotations

from quotawatch.strategies.base import FetchAttempt
from quotawatch.strategies.base import FetchContext
from quotawatch.strategies.base import FetchOutcome
from quotawatch.strategies.base import FetchResult
from quotawatch.strategies.base import FetchStrategy
from quotawatch.strategies.base import StrategyKind

__all__ = [
    "FetchStrategy",
    "FetchContext",
    "FetchResult",
    "FetchAttempt",
    "FetchOutcome",
    "StrategyKind",
]
