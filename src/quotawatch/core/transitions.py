"""Session quota depletion and restoration detection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

logger = logging.getLogger(__name__)

DEPLETED_THRESHOLD = 0.0001


class QuotaTransition(StrEnum):
    NONE = "none"
    DEPLETED = "depleted"
    RESTORED = "restored"


def is_depleted(remaining: float | None) -> bool:
    if remaining is None:
        return False
    return remaining <= DEPLETED_THRESHOLD


def transition(previous: float | None, current: float) -> QuotaTransition:
    """Classify a change in remaining session quota.

    ``previous`` is None on the first observation, which is never a
    transition on its own.
    """
    if previous is None:
        return QuotaTransition.NONE

    was_depleted = is_depleted(previous)
    now_depleted = is_depleted(current)
    if not was_depleted and now_depleted:
        return QuotaTransition.DEPLETED
    if was_depleted and not now_depleted:
        return QuotaTransition.RESTORED
    return QuotaTransition.NONE


@dataclass
class SessionQuotaTracker:
    """Remembers the last remaining value for one provider.

    ``observe`` returns the transition to announce, if any. When the very
    first observation is already depleted, DEPLETED is returned once; it
    is not repeated while the quota stays at zero.
    """

    provider_id: str
    last_remaining: float | None = None

    def observe(self, current: float) -> QuotaTransition:
        previous = self.last_remaining
        self.last_remaining = current

        if previous is None and is_depleted(current):
            logger.info("%s session quota already depleted at startup", self.provider_id)
            return QuotaTransition.DEPLETED

        result = transition(previous, current)
        if result is not QuotaTransition.NONE:
            logger.info(
                "%s session quota %s (%s -> %s)",
                self.provider_id,
                result.value,
                previous,
                current,
            )
        return result

    def reset(self) -> None:
        self.last_remaining = None
