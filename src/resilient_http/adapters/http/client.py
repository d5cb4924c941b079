"""HTTP adapter – Client, the resilient synchronous HTTP client."""
from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Callable

import httpx

from resilient_http.adapters.http.transport import Transport, build_request
from resilient_http.resilience.circuit_breaker import CircuitBreaker, CircuitBreakerPolicy
from resilient_http.resilience.classifier import FailureClassifier
from resilient_http.resilience.retry import (
    DEFAULT_RETRY_HEADER,
    AttemptOutcome,
    RetryExecutor,
    RetryPolicy,
)

if TYPE_CHECKING:
    from resilient_http.config import ClientSettings


def _make_breaker(
    breaker: CircuitBreaker | None,
    breaker_policy: CircuitBreakerPolicy | None,
    classifier: FailureClassifier,
) -> CircuitBreaker | None:
    if breaker is not None and breaker_policy is not None:
        raise ValueError("Pass either 'breaker' or 'breaker_policy', not both")
    if breaker is not None:
        return breaker
    if breaker_policy is not None:
        return CircuitBreaker(breaker_policy, classifier)
    return None


class Client:
    """HTTP client with retry and optional circuit breaker gating.

    Every :meth:`send` runs a retry loop; each attempt goes through the
    circuit breaker when one is configured, otherwise straight to the
    transport. Without a retry policy a request is attempted once.

    The value returned or raised is the last attempt's outcome, unchanged:
    a 5xx response is returned as is, a transport exception or a
    :class:`~resilient_http.resilience.circuit_breaker.CircuitOpenError` is
    raised as is.

    Parameters
    ----------
    transport:
        Object with ``send(request) -> httpx.Response``. Defaults to an
        ``httpx.Client`` built from *client_kwargs* and owned by this client.
    retry_policy:
        Retry budget and backoff. ``None`` means one attempt, no backoff.
    breaker_policy:
        Creates a breaker private to this client. ``None`` disables gating.
    breaker:
        An existing breaker to share with other clients. Mutually exclusive
        with *breaker_policy*.
    """

    def __init__(
        self,
        transport: Transport | None = None,
        retry_policy: RetryPolicy | None = None,
        breaker_policy: CircuitBreakerPolicy | None = None,
        classifier: FailureClassifier | None = None,
        *,
        retry_header: str = DEFAULT_RETRY_HEADER,
        breaker: CircuitBreaker | None = None,
        sleep: Callable[[float], None] = time.sleep,
        **client_kwargs: Any,
    ) -> None:
        if transport is not None and client_kwargs:
            raise ValueError("client_kwargs only apply when no transport is given")
        self._owns_transport = transport is None
        self._transport: Transport = transport if transport is not None else httpx.Client(**client_kwargs)
        self._classifier = classifier or FailureClassifier()
        self._breaker = _make_breaker(breaker, breaker_policy, self._classifier)
        self._executor = RetryExecutor(retry_policy, self._classifier, retry_header, sleep)

    @classmethod
    def from_settings(cls, settings: ClientSettings, transport: Transport | None = None, **kwargs: Any) -> "Client":
        return cls(
            transport,
            settings.retry_policy(),
            settings.breaker_policy(),
            settings.classifier(),
            retry_header=settings.retry_header,
            **kwargs,
        )

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    @property
    def breaker(self) -> CircuitBreaker | None:
        return self._breaker

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._executor.policy

    def allow(self) -> bool:
        """Whether the next request would be admitted; always ``True`` without a breaker.

        A query only: it never takes a HALF_OPEN trial slot.
        """
        return self._breaker is None or self._breaker.would_allow()

    def execute(self, request: httpx.Request) -> AttemptOutcome:
        """Run the retry loop and return the last outcome without raising."""
        return self._executor.run(request, self._attempt)

    def send(self, request: httpx.Request) -> httpx.Response:
        return self.execute(request).result()

    def request(self, method: str, url: str | httpx.URL, **kwargs: Any) -> httpx.Response:
        return self.send(build_request(self._transport, method, url, **kwargs))

    def get(self, url: str | httpx.URL, **kwargs: Any) -> httpx.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str | httpx.URL, **kwargs: Any) -> httpx.Response:
        return self.request("POST", url, **kwargs)

    def put(self, url: str | httpx.URL, **kwargs: Any) -> httpx.Response:
        return self.request("PUT", url, **kwargs)

    def patch(self, url: str | httpx.URL, **kwargs: Any) -> httpx.Response:
        return self.request("PATCH", url, **kwargs)

    def delete(self, url: str | httpx.URL, **kwargs: Any) -> httpx.Response:
        return self.request("DELETE", url, **kwargs)

    def close(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_transport:
            self._transport.close()  # type: ignore[attr-defined]

    def _attempt(self, request: httpx.Request) -> httpx.Response:
        if self._breaker is None:
            return self._transport.send(request)
        return self._breaker.call(lambda: self._transport.send(request))


__all__ = ["Client"]
