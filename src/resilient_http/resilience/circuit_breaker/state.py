"""Resilience – CircuitBreakerState enum and BreakerCounts snapshot."""
from __future__ import annotations

import dataclasses
from enum import Enum


class CircuitBreakerState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclasses.dataclass(frozen=True)
class BreakerCounts:
    """Point-in-time copy of a breaker's counters for the current state.

    Counters restart from zero on every state transition.
    """

    requests: int = 0
    total_failures: int = 0
    consecutive_failures: int = 0
    consecutive_successes: int = 0

    @property
    def failure_percentage(self) -> float:
        if self.requests == 0:
            return 0.0
        return self.total_failures / self.requests * 100


__all__ = ["BreakerCounts", "CircuitBreakerState"]
