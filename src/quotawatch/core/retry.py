"""Ordered credential-candidate retry for quotawatch."""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from collections.abc import Callable
from collections.abc import Sequence
from typing import TypeVar

from quotawatch.errors.types import ClassifiedError
from quotawatch.errors.types import ErrorKind

logger = logging.getLogger(__name__)

C = TypeVar("C")
T = TypeVar("T")

RETRYABLE_CANDIDATE_KINDS = frozenset(
    {
        ErrorKind.NOT_AUTHENTICATED,
        ErrorKind.INVALID_CREDENTIALS,
        ErrorKind.MISSING_USAGE_DATA,
    }
)


class NoCandidatesError(Exception):
    """The candidate list was empty, so nothing was attempted."""


def is_candidate_retryable(error: BaseException) -> bool:
    """Whether the next credential candidate could plausibly succeed.

    Only credential-shaped failures qualify: a stale or foreign session
    cookie, or a signed-in page without usage data for this account.
    """
    return isinstance(error, ClassifiedError) and error.kind in RETRYABLE_CANDIDATE_KINDS


async def run_candidates(
    candidates: Sequence[C],
    attempt: Callable[[C], Awaitable[T]],
    should_retry: Callable[[BaseException], bool] = is_candidate_retryable,
    on_retry: Callable[[C, BaseException], None] | None = None,
) -> T:
    """Try candidates in order until one succeeds.

    A failure moves on to the next candidate only when ``should_retry``
    accepts it and a candidate remains; ``on_retry`` is told about each
    skipped candidate. Any other failure propagates unchanged, and running
    out of candidates re-raises the last failure.

    Raises:
        NoCandidatesError: If ``candidates`` is empty.
    """
    if not candidates:
        raise NoCandidatesError("No credential candidates to try")

    last_index = len(candidates) - 1
    for index, candidate in enumerate(candidates):
        try:
            return await attempt(candidate)
        except Exception as error:
            if index < last_index and should_retry(error):
                if on_retry is not None:
                    on_retry(candidate, error)
                continue
            raise

    # The loop always returns or raises on the last candidate.
    raise AssertionError("unreachable")
