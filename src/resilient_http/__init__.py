"""resilient-http – retry-with-backoff and circuit breaker gating for httpx.

Quick start::

    import httpx
    from resilient_http import Client, CircuitBreakerPolicy, ExponentialBackoff, RetryPolicy

    with Client(
        retry_policy=RetryPolicy(backoff=ExponentialBackoff(), max_retry=3),
        breaker_policy=CircuitBreakerPolicy(name="billing", min_requests=20, failure_percentage=50),
        base_url="https://billing.internal",
        timeout=5.0,
    ) as client:
        response = client.get("/invoices")
"""

from resilient_http.adapters.http import AsyncClient, AsyncTransport, Client, Transport
from resilient_http.config import ClientSettings, ConfigError, EnvSettingsLoader
from resilient_http.errors import BaseError, InfrastructureError
from resilient_http.resilience import (
    DEFAULT_RETRY_HEADER,
    DEFAULT_STATUS_THRESHOLD,
    AttemptOutcome,
    BackoffStrategy,
    BreakerCounts,
    CircuitBreaker,
    CircuitBreakerPolicy,
    CircuitBreakerState,
    CircuitOpenError,
    ConstantBackoff,
    ExponentialBackoff,
    FailureClassifier,
    Jitter,
    LinearBackoff,
    NoBackoff,
    RetryExecutor,
    RetryPolicy,
    TenacityBackoff,
    Verdict,
)

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_RETRY_HEADER",
    "DEFAULT_STATUS_THRESHOLD",
    "AsyncClient",
    "AsyncTransport",
    "AttemptOutcome",
    "BackoffStrategy",
    "BaseError",
    "BreakerCounts",
    "CircuitBreaker",
    "CircuitBreakerPolicy",
    "CircuitBreakerState",
    "CircuitOpenError",
    "Client",
    "ClientSettings",
    "ConfigError",
    "ConstantBackoff",
    "EnvSettingsLoader",
    "ExponentialBackoff",
    "FailureClassifier",
    "InfrastructureError",
    "Jitter",
    "LinearBackoff",
    "NoBackoff",
    "RetryExecutor",
    "RetryPolicy",
    "TenacityBackoff",
    "Transport",
    "Verdict",
    "__version__",
]
