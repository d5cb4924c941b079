"""Resilience – CircuitBreakerPolicy."""
from __future__ import annotations

import dataclasses

DEFAULT_MAX_HALF_OPEN_REQUESTS = 5


@dataclasses.dataclass(frozen=True)
class CircuitBreakerPolicy:
    """Configuration for a circuit breaker.

    The breaker trips from CLOSED to OPEN once at least *min_requests*
    outcomes were recorded and either *min_consecutive_failures* failures
    happened in a row or the failure ratio reached *failure_percentage*.

    *max_half_open_requests* bounds the trial batch admitted in HALF_OPEN;
    that many consecutive trial successes close the breaker again.

    *open_timeout_seconds* is how long OPEN lasts before the next admission
    check moves to HALF_OPEN. ``None`` keeps the breaker OPEN until
    :meth:`CircuitBreaker.reset` or :meth:`CircuitBreaker.half_open`.
    """

    name: str = "http-client"
    min_requests: int = 10
    min_consecutive_failures: int = 5
    failure_percentage: float = 50.0
    max_half_open_requests: int = DEFAULT_MAX_HALF_OPEN_REQUESTS
    open_timeout_seconds: float | None = None

    def __post_init__(self) -> None:
        if self.min_requests < 0:
            raise ValueError(f"min_requests must be >= 0, got {self.min_requests}")
        if self.min_consecutive_failures < 0:
            raise ValueError(
                f"min_consecutive_failures must be >= 0, got {self.min_consecutive_failures}"
            )
        if not 0 <= self.failure_percentage <= 100:
            raise ValueError(
                f"failure_percentage must be within [0, 100], got {self.failure_percentage}"
            )
        if self.max_half_open_requests < 1:
            raise ValueError(
                f"max_half_open_requests must be >= 1, got {self.max_half_open_requests}"
            )
        if self.open_timeout_seconds is not None and self.open_timeout_seconds < 0:
            raise ValueError(
                f"open_timeout_seconds must be >= 0, got {self.open_timeout_seconds}"
            )


__all__ = ["DEFAULT_MAX_HALF_OPEN_REQUESTS", "CircuitBreakerPolicy"]
