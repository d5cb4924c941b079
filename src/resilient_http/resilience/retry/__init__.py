"""Resilience – retry loop with pluggable backoff strategies."""
from resilient_http.resilience.retry.backoff import (
    BackoffStrategy,
    ConstantBackoff,
    ExponentialBackoff,
    Jitter,
    LinearBackoff,
    NoBackoff,
)
from resilient_http.resilience.retry.policy import (
    DEFAULT_RETRY_HEADER,
    AsyncAttemptBody,
    AttemptBody,
    AttemptOutcome,
    RetryExecutor,
    RetryPolicy,
)
from resilient_http.resilience.retry.tenacity_adapter import TenacityBackoff

__all__ = [
    "DEFAULT_RETRY_HEADER",
    "AsyncAttemptBody",
    "AttemptBody",
    "AttemptOutcome",
    "BackoffStrategy",
    "ConstantBackoff",
    "ExponentialBackoff",
    "Jitter",
    "LinearBackoff",
    "NoBackoff",
    "RetryExecutor",
    "RetryPolicy",
    "TenacityBackoff",
]
