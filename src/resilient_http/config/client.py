"""Config – ClientSettings for building resilient clients from the environment."""
from __future__ import annotations

import dataclasses
import typing

from resilient_http.config.errors import InvalidSettingValueError
from resilient_http.config.settings import Settings
from resilient_http.resilience.circuit_breaker import CircuitBreakerPolicy
from resilient_http.resilience.circuit_breaker.policy import DEFAULT_MAX_HALF_OPEN_REQUESTS
from resilient_http.resilience.classifier import DEFAULT_STATUS_THRESHOLD, FailureClassifier
from resilient_http.resilience.retry import (
    DEFAULT_RETRY_HEADER,
    BackoffStrategy,
    ConstantBackoff,
    ExponentialBackoff,
    Jitter,
    LinearBackoff,
    NoBackoff,
    RetryPolicy,
)

BACKOFF_KINDS = ("none", "constant", "linear", "exponential")


@dataclasses.dataclass
class ClientSettings(Settings):
    """Retry and circuit breaker knobs, read from ``RESILIENT_HTTP_*`` variables.

    Example::

        RESILIENT_HTTP_MAX_RETRY=3
        RESILIENT_HTTP_BACKOFF=exponential
        RESILIENT_HTTP_BREAKER_ENABLED=true
        RESILIENT_HTTP_MIN_REQUESTS=20
    """

    _prefix: typing.ClassVar[str] = "RESILIENT_HTTP"

    max_retry: int = 0
    backoff: str = "none"
    backoff_delay: float = 0.1
    backoff_max_delay: float = 30.0
    backoff_jitter: str = Jitter.NONE.value
    retry_header: str = DEFAULT_RETRY_HEADER
    failure_status_threshold: int = DEFAULT_STATUS_THRESHOLD

    breaker_enabled: bool = False
    breaker_name: str = "http-client"
    min_requests: int = 10
    min_consecutive_failures: int = 5
    failure_percentage: float = 50.0
    max_half_open_requests: int = DEFAULT_MAX_HALF_OPEN_REQUESTS
    open_timeout_seconds: float | None = None

    def _validate(self) -> None:  # noqa: PLR0912
        if self.max_retry < 0:
            raise InvalidSettingValueError("max_retry", self.max_retry, "must be >= 0")
        if self.backoff not in BACKOFF_KINDS:
            raise InvalidSettingValueError(
                "backoff", self.backoff, f"must be one of {', '.join(BACKOFF_KINDS)}"
            )
        if self.backoff_delay < 0:
            raise InvalidSettingValueError("backoff_delay", self.backoff_delay, "must be >= 0")
        if self.backoff_max_delay < self.backoff_delay:
            raise InvalidSettingValueError(
                "backoff_max_delay", self.backoff_max_delay, "must be >= backoff_delay"
            )
        if self.backoff_jitter not in {j.value for j in Jitter}:
            raise InvalidSettingValueError(
                "backoff_jitter", self.backoff_jitter, "must be one of none, full, equal"
            )
        if not self.retry_header:
            raise InvalidSettingValueError("retry_header", self.retry_header, "must not be empty")
        if not 100 <= self.failure_status_threshold <= 600:
            raise InvalidSettingValueError(
                "failure_status_threshold", self.failure_status_threshold, "must be an HTTP status code"
            )
        if self.min_requests < 0:
            raise InvalidSettingValueError("min_requests", self.min_requests, "must be >= 0")
        if self.min_consecutive_failures < 0:
            raise InvalidSettingValueError(
                "min_consecutive_failures", self.min_consecutive_failures, "must be >= 0"
            )
        if not 0 <= self.failure_percentage <= 100:
            raise InvalidSettingValueError(
                "failure_percentage", self.failure_percentage, "must be within [0, 100]"
            )
        if self.max_half_open_requests < 1:
            raise InvalidSettingValueError(
                "max_half_open_requests", self.max_half_open_requests, "must be >= 1"
            )
        if self.open_timeout_seconds is not None and self.open_timeout_seconds < 0:
            raise InvalidSettingValueError(
                "open_timeout_seconds", self.open_timeout_seconds, "must be >= 0"
            )

    def backoff_strategy(self) -> BackoffStrategy:
        jitter = Jitter(self.backoff_jitter)
        if self.backoff == "constant":
            return ConstantBackoff(self.backoff_delay)
        if self.backoff == "linear":
            return LinearBackoff(self.backoff_delay, self.backoff_max_delay, jitter)
        if self.backoff == "exponential":
            return ExponentialBackoff(self.backoff_delay, self.backoff_max_delay, jitter=jitter)
        return NoBackoff()

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(backoff=self.backoff_strategy(), max_retry=self.max_retry)

    def breaker_policy(self) -> CircuitBreakerPolicy | None:
        if not self.breaker_enabled:
            return None
        return CircuitBreakerPolicy(
            name=self.breaker_name,
            min_requests=self.min_requests,
            min_consecutive_failures=self.min_consecutive_failures,
            failure_percentage=self.failure_percentage,
            max_half_open_requests=self.max_half_open_requests,
            open_timeout_seconds=self.open_timeout_seconds,
        )

    def classifier(self) -> FailureClassifier:
        return FailureClassifier(status_threshold=self.failure_status_threshold)


__all__ = ["BACKOFF_KINDS", "ClientSettings"]
