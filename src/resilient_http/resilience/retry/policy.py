"""Resilience – RetryPolicy, AttemptOutcome and RetryExecutor."""
from __future__ import annotations

import asyncio
import dataclasses
import time
from typing import Awaitable, Callable

import httpx

from resilient_http.observability.logging import get_logger
from resilient_http.resilience.circuit_breaker import CircuitOpenError
from resilient_http.resilience.classifier import FailureClassifier, Verdict
from resilient_http.resilience.retry.backoff import BackoffStrategy, NoBackoff

logger = get_logger(__name__)

DEFAULT_RETRY_HEADER = "X-Retry-Attempt"

AttemptBody = Callable[[httpx.Request], httpx.Response]
AsyncAttemptBody = Callable[[httpx.Request], Awaitable[httpx.Response]]


@dataclasses.dataclass(frozen=True)
class RetryPolicy:
    """Immutable retry configuration.

    ``max_retry`` counts retries, not attempts: ``0`` means a single attempt.
    Exceptions that are not instances of ``retryable_exceptions`` end the
    loop at once and propagate to the caller. A circuit breaker denial is
    always retried: it spends the budget like any other failed attempt.

    *backoff* serves as a template; every executor run draws its delays from
    a fresh copy, so concurrent and successive calls each start the sequence
    from the beginning.
    """

    backoff: BackoffStrategy = dataclasses.field(default_factory=NoBackoff)
    max_retry: int = 0
    retryable_exceptions: tuple[type[BaseException], ...] = (Exception,)

    def __post_init__(self) -> None:
        if self.max_retry < 0:
            raise ValueError(f"max_retry must be >= 0, got {self.max_retry}")

    @property
    def max_attempts(self) -> int:
        return self.max_retry + 1

    def should_retry(self, exc: BaseException) -> bool:
        return isinstance(exc, (CircuitOpenError, *self.retryable_exceptions))


@dataclasses.dataclass(frozen=True)
class AttemptOutcome:
    """Result of one attempt: a response, or the exception that replaced it."""

    response: httpx.Response | None = None
    error: Exception | None = None
    attempt: int = 0
    verdict: Verdict = Verdict.SUCCESS

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.verdict.failed

    def result(self) -> httpx.Response:
        """Return the response, or raise the recorded error unchanged."""
        if self.error is not None:
            raise self.error
        if self.response is None:
            raise RuntimeError(f"attempt {self.attempt} has neither a response nor an error")
        return self.response


class RetryExecutor:
    """Run an attempt body until it succeeds or the retry budget is spent.

    Every attempt tags the request with *retry_header* set to the zero-based
    attempt index. A discarded response is drained and closed before the
    next attempt so its connection goes back to the pool. The last outcome
    is returned verbatim once attempts run out, whatever produced it.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        classifier: FailureClassifier | None = None,
        retry_header: str = DEFAULT_RETRY_HEADER,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._policy = policy or RetryPolicy()
        self._classifier = classifier or FailureClassifier()
        self._retry_header = retry_header
        self._sleep = sleep

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def retry_header(self) -> str:
        return self._retry_header

    def run(self, request: httpx.Request, attempt_body: AttemptBody) -> AttemptOutcome:
        backoff = self._policy.backoff.fresh()
        outcome: AttemptOutcome | None = None
        for attempt in range(self._policy.max_attempts):
            if outcome is not None:
                _drain(outcome.response)
            self._tag(request, attempt)
            try:
                response = attempt_body(request)
            except Exception as exc:
                outcome = self._failed(request, attempt, exc)
            else:
                outcome = self._completed(attempt, response)
            if outcome.succeeded:
                return outcome
            if attempt < self._policy.max_retry:
                self._sleep(self._next_delay(request, outcome, backoff))
        assert outcome is not None
        self._log_exhausted(request, outcome)
        return outcome

    async def run_async(
        self,
        request: httpx.Request,
        attempt_body: AsyncAttemptBody,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> AttemptOutcome:
        backoff = self._policy.backoff.fresh()
        outcome: AttemptOutcome | None = None
        for attempt in range(self._policy.max_attempts):
            if outcome is not None:
                await _adrain(outcome.response)
            self._tag(request, attempt)
            try:
                response = await attempt_body(request)
            except Exception as exc:
                outcome = self._failed(request, attempt, exc)
            else:
                outcome = self._completed(attempt, response)
            if outcome.succeeded:
                return outcome
            if attempt < self._policy.max_retry:
                await sleep(self._next_delay(request, outcome, backoff))
        assert outcome is not None
        self._log_exhausted(request, outcome)
        return outcome

    # ── Internals ────────────────────────────────────────────────────

    def _tag(self, request: httpx.Request, attempt: int) -> None:
        request.headers[self._retry_header] = str(attempt)

    def _failed(self, request: httpx.Request, attempt: int, exc: Exception) -> AttemptOutcome:
        if isinstance(exc, CircuitOpenError):
            return AttemptOutcome(error=exc, attempt=attempt, verdict=Verdict.REJECTED)
        if not self._policy.should_retry(exc):
            logger.debug(
                "retry.non_retryable",
                method=request.method,
                url=str(request.url),
                attempt=attempt,
                error=repr(exc),
            )
            raise exc
        return AttemptOutcome(error=exc, attempt=attempt, verdict=self._classifier.classify(None, exc))

    def _completed(self, attempt: int, response: httpx.Response) -> AttemptOutcome:
        return AttemptOutcome(
            response=response, attempt=attempt, verdict=self._classifier.classify(response)
        )

    def _next_delay(
        self, request: httpx.Request, outcome: AttemptOutcome, backoff: BackoffStrategy
    ) -> float:
        delay = max(0.0, backoff.next_interval())
        logger.debug(
            "retry.attempt_failed",
            method=request.method,
            url=str(request.url),
            attempt=outcome.attempt,
            verdict=outcome.verdict.value,
            status_code=outcome.response.status_code if outcome.response is not None else None,
            error=repr(outcome.error) if outcome.error is not None else None,
            delay=round(delay, 3),
        )
        return delay

    def _log_exhausted(self, request: httpx.Request, outcome: AttemptOutcome) -> None:
        logger.warning(
            "retry.exhausted",
            method=request.method,
            url=str(request.url),
            attempts=outcome.attempt + 1,
            verdict=outcome.verdict.value,
        )


def _drain(response: httpx.Response | None) -> None:
    if response is None or response.is_closed:
        return
    try:
        if not response.is_stream_consumed:
            response.read()
    except (httpx.HTTPError, httpx.StreamError) as exc:
        logger.debug("retry.response_drain_failed", error=repr(exc))
    finally:
        response.close()


async def _adrain(response: httpx.Response | None) -> None:
    if response is None or response.is_closed:
        return
    try:
        if not response.is_stream_consumed:
            await response.aread()
    except (httpx.HTTPError, httpx.StreamError) as exc:
        logger.debug("retry.response_drain_failed", error=repr(exc))
    finally:
        await response.aclose()


__all__ = [
    "DEFAULT_RETRY_HEADER",
    "AsyncAttemptBody",
    "AttemptBody",
    "AttemptOutcome",
    "RetryExecutor",
    "RetryPolicy",
]
