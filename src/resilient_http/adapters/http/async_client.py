"""HTTP adapter – AsyncClient."""
from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Callable

import httpx

from resilient_http.adapters.http.client import _make_breaker
from resilient_http.adapters.http.transport import AsyncTransport, build_request
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


class AsyncClient:
    """Async counterpart of :class:`~resilient_http.adapters.http.client.Client`.

    Backoff waits use ``asyncio.sleep``; a breaker may be shared with
    synchronous clients.
    """

    def __init__(
        self,
        transport: AsyncTransport | None = None,
        retry_policy: RetryPolicy | None = None,
        breaker_policy: CircuitBreakerPolicy | None = None,
        classifier: FailureClassifier | None = None,
        *,
        retry_header: str = DEFAULT_RETRY_HEADER,
        breaker: CircuitBreaker | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        **client_kwargs: Any,
    ) -> None:
        if transport is not None and client_kwargs:
            raise ValueError("client_kwargs only apply when no transport is given")
        self._owns_transport = transport is None
        self._transport: AsyncTransport = (
            transport if transport is not None else httpx.AsyncClient(**client_kwargs)
        )
        self._classifier = classifier or FailureClassifier()
        self._breaker = _make_breaker(breaker, breaker_policy, self._classifier)
        self._executor = RetryExecutor(retry_policy, self._classifier, retry_header)
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls, settings: ClientSettings, transport: AsyncTransport | None = None, **kwargs: Any
    ) -> "AsyncClient":
        return cls(
            transport,
            settings.retry_policy(),
            settings.breaker_policy(),
            settings.classifier(),
            retry_header=settings.retry_header,
            **kwargs,
        )

    async def __aenter__(self) -> "AsyncClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    @property
    def breaker(self) -> CircuitBreaker | None:
        return self._breaker

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._executor.policy

    def allow(self) -> bool:
        return self._breaker is None or self._breaker.would_allow()

    async def execute(self, request: httpx.Request) -> AttemptOutcome:
        return await self._executor.run_async(request, self._attempt, sleep=self._sleep)

    async def send(self, request: httpx.Request) -> httpx.Response:
        outcome = await self.execute(request)
        return outcome.result()

    async def request(self, method: str, url: str | httpx.URL, **kwargs: Any) -> httpx.Response:
        return await self.send(build_request(self._transport, method, url, **kwargs))

    async def get(self, url: str | httpx.URL, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str | httpx.URL, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str | httpx.URL, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def patch(self, url: str | httpx.URL, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: str | httpx.URL, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)

    async def aclose(self) -> None:
        if self._owns_transport:
            await self._transport.aclose()  # type: ignore[attr-defined]

    async def _attempt(self, request: httpx.Request) -> httpx.Response:
        if self._breaker is None:
            return await self._transport.send(request)
        return await self._breaker.call_async(lambda: self._transport.send(request))


__all__ = ["AsyncClient"]
