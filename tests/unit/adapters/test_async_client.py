"""Unit tests – resilient HTTP AsyncClient."""
from __future__ import annotations

import asyncio

import httpx
import pytest
import respx

from resilient_http import AsyncClient, Client, ClientSettings
from resilient_http.adapters.http import AsyncTransport
from resilient_http.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerPolicy,
    CircuitBreakerState,
    CircuitOpenError,
)
from resilient_http.resilience.retry import (
    DEFAULT_RETRY_HEADER,
    ExponentialBackoff,
    Jitter,
    RetryPolicy,
)
from resilient_http.testing import (
    AsyncRecordingSleep,
    AsyncScriptedTransport,
    ScriptedTransport,
)


def _request() -> httpx.Request:
    return httpx.Request("GET", "http://svc/items")


class TestAsyncClient:
    def test_async_scripted_transport_satisfies_protocol(self) -> None:
        assert isinstance(AsyncScriptedTransport(200), AsyncTransport)

    def test_retries_with_async_sleep(self) -> None:
        transport = AsyncScriptedTransport(500, 500, 200)
        sleep = AsyncRecordingSleep()

        async def run() -> httpx.Response:
            client = AsyncClient(transport, RetryPolicy(max_retry=3), sleep=sleep)
            return await client.send(_request())

        response = asyncio.run(run())
        assert response.status_code == 200
        assert transport.retry_values == ["0", "1", "2"]
        assert len(sleep.delays) == 2

    def test_final_error_raised(self) -> None:
        transport = AsyncScriptedTransport(httpx.ConnectError("down"))

        async def run() -> None:
            client = AsyncClient(transport, RetryPolicy(max_retry=1), sleep=AsyncRecordingSleep())
            await client.get("http://svc/items")

        with pytest.raises(httpx.ConnectError):
            asyncio.run(run())
        assert transport.calls == 2

    def test_breaker_trip_rejects_remaining_attempts(self) -> None:
        transport = AsyncScriptedTransport(503)
        policy = CircuitBreakerPolicy(
            name="svc", min_requests=1, min_consecutive_failures=1, failure_percentage=100.0
        )

        async def run() -> AsyncClient:
            client = AsyncClient(transport, RetryPolicy(max_retry=2), policy, sleep=AsyncRecordingSleep())
            with pytest.raises(CircuitOpenError):
                await client.send(_request())
            return client

        client = asyncio.run(run())
        assert transport.calls == 1
        assert client.breaker is not None
        assert client.breaker.state is CircuitBreakerState.OPEN
        assert client.allow() is False

    def test_allow_does_not_use_half_open_slots(self) -> None:
        breaker = CircuitBreaker(
            CircuitBreakerPolicy(
                min_requests=1, min_consecutive_failures=1, max_half_open_requests=2
            )
        )
        breaker.record(False)
        breaker.half_open()
        transport = AsyncScriptedTransport(200)
        client = AsyncClient(transport, breaker=breaker)
        assert all(client.allow() for _ in range(3))

        response = asyncio.run(client.send(_request()))
        assert response.status_code == 200
        assert transport.calls == 1
        assert breaker.state is CircuitBreakerState.HALF_OPEN
        assert client.allow() is True

    def test_successive_sends_see_the_same_delays(self) -> None:
        sleep = AsyncRecordingSleep()
        policy = RetryPolicy(backoff=ExponentialBackoff(0.5, 10.0, jitter=Jitter.NONE), max_retry=2)

        async def run() -> None:
            client = AsyncClient(AsyncScriptedTransport(503), policy, sleep=sleep)
            await client.send(_request())
            await client.send(_request())

        asyncio.run(run())
        assert sleep.delays == [0.5, 1.0, 0.5, 1.0]

    def test_breaker_shared_with_sync_client(self) -> None:
        breaker = CircuitBreaker(
            CircuitBreakerPolicy(min_requests=2, min_consecutive_failures=2, failure_percentage=100.0)
        )
        sync_client = Client(ScriptedTransport(500), breaker=breaker)
        sync_client.send(_request())
        sync_client.send(_request())
        transport = AsyncScriptedTransport(200)

        async def run() -> None:
            client = AsyncClient(transport, breaker=breaker)
            await client.send(_request())

        with pytest.raises(CircuitOpenError):
            asyncio.run(run())
        assert transport.calls == 0

    def test_cancelled_attempt_frees_half_open_slot(self) -> None:
        breaker = CircuitBreaker(
            CircuitBreakerPolicy(
                min_requests=1, min_consecutive_failures=1, max_half_open_requests=1
            )
        )
        breaker.record(False)
        breaker.half_open()

        async def hang(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(10)
            return httpx.Response(200)

        class HangingTransport:
            send = staticmethod(hang)

        async def run() -> None:
            client = AsyncClient(HangingTransport(), breaker=breaker)
            task = asyncio.create_task(client.send(_request()))
            await asyncio.sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(run())
        assert breaker.state is CircuitBreakerState.HALF_OPEN
        assert breaker.allow() is True

    def test_from_settings(self) -> None:
        settings = ClientSettings(max_retry=1, breaker_enabled=True, breaker_name="billing")
        client = AsyncClient.from_settings(settings, AsyncScriptedTransport(200))
        assert client.retry_policy.max_retry == 1
        assert client.breaker is not None
        assert client.breaker.name == "billing"

    def test_async_context_manager_closes_owned_client(self) -> None:
        async def run() -> AsyncClient:
            async with AsyncClient() as client:
                pass
            return client

        client = asyncio.run(run())
        assert client._transport.is_closed  # type: ignore[attr-defined]

    def test_borrowed_transport_left_open(self) -> None:
        transport = AsyncScriptedTransport(200)

        async def run() -> None:
            async with AsyncClient(transport):
                pass

        asyncio.run(run())
        assert transport.closed is False

    @respx.mock
    def test_over_owned_httpx_async_client(self) -> None:
        seen: list[str | None] = []
        responses = iter([httpx.Response(500), httpx.Response(201)])

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers.get(DEFAULT_RETRY_HEADER))
            return next(responses)

        respx.post("http://svc/orders").mock(side_effect=handler)

        async def run() -> httpx.Response:
            async with AsyncClient(retry_policy=RetryPolicy(max_retry=1), sleep=AsyncRecordingSleep()) as client:
                return await client.post("http://svc/orders", json={"id": 1})

        response = asyncio.run(run())
        assert response.status_code == 201
        assert seen == ["0", "1"]
