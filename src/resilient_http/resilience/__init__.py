"""Resilience – failure classification, circuit breaker and retry."""

from resilient_http.resilience.classifier import DEFAULT_STATUS_THRESHOLD, FailureClassifier, Verdict
from resilient_http.resilience.circuit_breaker import (
    BreakerCounts,
    CircuitBreaker,
    CircuitBreakerPolicy,
    CircuitBreakerState,
    CircuitOpenError,
)
from resilient_http.resilience.retry import (
    DEFAULT_RETRY_HEADER,
    AttemptOutcome,
    BackoffStrategy,
    ConstantBackoff,
    ExponentialBackoff,
    Jitter,
    LinearBackoff,
    NoBackoff,
    RetryExecutor,
    RetryPolicy,
    TenacityBackoff,
)

__all__ = [
    "DEFAULT_RETRY_HEADER",
    "DEFAULT_STATUS_THRESHOLD",
    "AttemptOutcome",
    "BackoffStrategy",
    "BreakerCounts",
    "CircuitBreaker",
    "CircuitBreakerPolicy",
    "CircuitBreakerState",
    "CircuitOpenError",
    "ConstantBackoff",
    "ExponentialBackoff",
    "FailureClassifier",
    "Jitter",
    "LinearBackoff",
    "NoBackoff",
    "RetryExecutor",
    "RetryPolicy",
    "TenacityBackoff",
    "Verdict",
]
