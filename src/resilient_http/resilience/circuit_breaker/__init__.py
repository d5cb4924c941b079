"""Resilience – Circuit Breaker pattern."""
from resilient_http.resilience.circuit_breaker.errors import CircuitOpenError
from resilient_http.resilience.circuit_breaker.state import BreakerCounts, CircuitBreakerState
from resilient_http.resilience.circuit_breaker.policy import DEFAULT_MAX_HALF_OPEN_REQUESTS, CircuitBreakerPolicy
from resilient_http.resilience.circuit_breaker.breaker import CircuitBreaker, StateChangeListener

__all__ = [
    "DEFAULT_MAX_HALF_OPEN_REQUESTS",
    "BreakerCounts",
    "CircuitBreaker",
    "CircuitBreakerPolicy",
    "CircuitBreakerState",
    "CircuitOpenError",
    "StateChangeListener",
]
