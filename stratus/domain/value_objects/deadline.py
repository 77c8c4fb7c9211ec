"""
Deadline Value Object

Architectural Intent:
- One absolute deadline per lifecycle call, computed before the first
  blocking operation and threaded through every phase
- Blocking phases ask for remaining() and fail fast instead of being handed
  a zero or negative timeout

Design Decisions:
- Uses a monotonic clock so wall-clock adjustments cannot stretch or shrink
  a budget; the clock is injectable for tests
"""

from __future__ import annotations
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Union

from stratus.domain.errors import ProvisioningTimeout

Budget = Union[timedelta, float, int]
Clock = Callable[[], float]


def budget_seconds(budget: Budget) -> float:
    """Normalize a budget given as timedelta or seconds."""
    if isinstance(budget, timedelta):
        return budget.total_seconds()
    return float(budget)


@dataclass(frozen=True)
class Deadline:
    expires_at: float
    clock: Clock = field(default=time.monotonic, repr=False, compare=False)

    @classmethod
    def after(cls, budget: Budget, clock: Clock = time.monotonic) -> "Deadline":
        return cls(expires_at=clock() + budget_seconds(budget), clock=clock)

    def seconds_left(self) -> float:
        return self.expires_at - self.clock()

    @property
    def expired(self) -> bool:
        return self.seconds_left() <= 0

    def remaining(self) -> float:
        """Seconds until expiry. Raises ProvisioningTimeout once passed."""
        left = self.seconds_left()
        if left <= 0:
            raise ProvisioningTimeout(
                f"Passed target end time ({-left:.3f}s ago)"
            )
        return left

    def check(self, message: str = "Deadline exceeded") -> None:
        if self.expired:
            raise ProvisioningTimeout(message)
