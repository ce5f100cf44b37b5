"""Consecutive-failure gate to keep transient errors off the screen."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ConsecutiveFailureGate:
    """Counts consecutive refresh failures for one provider.

    The first failure after a success is hidden when the provider already
    has data on screen; every later failure in the streak is surfaced. A
    provider with no prior data surfaces its very first failure.
    """

    streak: int = 0

    def record_success(self) -> None:
        """Record a success and reset the streak."""
        self.streak = 0

    def should_surface_error(self, had_prior_data: bool) -> bool:
        """Record a failure and decide whether the user should see it."""
        self.streak += 1
        if had_prior_data and self.streak == 1:
            return False
        return True

    def reset(self) -> None:
        """Clear the streak, e.g. when the provider is disabled."""
        self.streak = 0
