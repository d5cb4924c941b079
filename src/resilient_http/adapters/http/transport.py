"""HTTP adapter – transport capabilities consumed by the resilient clients."""
from __future__ import annotations

from typing import Protocol, runtime_checkable

import httpx


@runtime_checkable
class Transport(Protocol):
    """Anything that sends a request and blocks until a response or an error.

    ``httpx.Client`` satisfies this protocol.
    """

    def send(self, request: httpx.Request) -> httpx.Response: ...


@runtime_checkable
class AsyncTransport(Protocol):
    """Coroutine counterpart of :class:`Transport`; ``httpx.AsyncClient`` satisfies it."""

    async def send(self, request: httpx.Request) -> httpx.Response: ...


def build_request(transport: object, method: str, url: str | httpx.URL, **kwargs: object) -> httpx.Request:
    """Build a request with the transport's own defaults when it has any.

    ``httpx`` clients merge their ``base_url``, default headers and cookies in
    ``build_request``; bare transports get a plain :class:`httpx.Request`.
    """
    builder = getattr(transport, "build_request", None)
    if builder is not None:
        return builder(method, url, **kwargs)
    return httpx.Request(method, url, **kwargs)  # type: ignore[arg-type]


__all__ = ["AsyncTransport", "Transport", "build_request"]
