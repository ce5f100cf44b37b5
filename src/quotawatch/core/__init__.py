"""Core orchestration and utilities for quotawatch."""

from quotawatch.core.gate import ConsecutiveFailureGate
from quotawatch.core.retry import NoCandidatesError
from quotawatch.core.retry import is_candidate_retryable
from quotawatch.core.retry import run_candidates
from quotawatch.core.transitions import QuotaTransition
from quotawatch.core.transitions import SessionQuotaTracker
from quotawatch.core.transitions import transition

__all__ = [
    # retry
    "NoCandidatesError",
    "is_candidate_retryable",
    "run_candidates",
    # gate
    "ConsecutiveFailureGate",
    # transitions
    "QuotaTransition",
    "SessionQuotaTracker",
    "transition",
]
