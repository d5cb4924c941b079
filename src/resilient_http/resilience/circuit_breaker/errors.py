"""Resilience – circuit-breaker specific errors."""
from __future__ import annotations

from typing import Any

from resilient_http.errors import InfrastructureError
from resilient_http.resilience.circuit_breaker.state import CircuitBreakerState


class CircuitOpenError(InfrastructureError):
    """Raised when a :class:`CircuitBreaker` refuses to admit a call.

    The transport is never touched when this error is raised, which is what
    tells "we stopped trying" apart from "the server is failing".

    Attributes
    ----------
    circuit_name:
        Name of the circuit breaker that rejected the call.
    state:
        State the breaker was in: ``OPEN``, or ``HALF_OPEN`` once the trial
        quota is used up.
    """

    default_code = "circuit_open"

    def __init__(
        self,
        circuit_name: str,
        state: CircuitBreakerState = CircuitBreakerState.OPEN,
        message: str | None = None,
    ) -> None:
        self.circuit_name = circuit_name
        self.state = state
        if message is None:
            if state is CircuitBreakerState.HALF_OPEN:
                message = f"Circuit breaker '{circuit_name}' is HALF_OPEN and its trial quota is exhausted"
            else:
                message = f"Circuit breaker '{circuit_name}' is OPEN"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base["circuit_name"] = self.circuit_name
        base["state"] = self.state.value
        return base


__all__ = ["CircuitOpenError"]
