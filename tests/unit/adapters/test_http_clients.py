"""Unit tests – resilient HTTP Client."""
from __future__ import annotations

import json

import httpx
import pytest
import respx

from resilient_http import Client, ClientSettings
from resilient_http.adapters.http import Transport
from resilient_http.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerPolicy,
    CircuitBreakerState,
    CircuitOpenError,
)
from resilient_http.resilience.classifier import Verdict
from resilient_http.resilience.retry import (
    DEFAULT_RETRY_HEADER,
    ExponentialBackoff,
    Jitter,
    RetryPolicy,
)
from resilient_http.testing import RecordingSleep, ScriptedTransport, SequenceBackoff


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _request(url: str = "http://svc/items") -> httpx.Request:
    return httpx.Request("GET", url)


def _trip_fast_policy(**overrides: object) -> CircuitBreakerPolicy:
    """Trips on the second consecutive failure, never on percentage alone."""
    values: dict[str, object] = {
        "name": "svc",
        "min_requests": 2,
        "min_consecutive_failures": 2,
        "failure_percentage": 100.0,
    }
    values.update(overrides)
    return CircuitBreakerPolicy(**values)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Plain sends
# ---------------------------------------------------------------------------

class TestClientSend:
    def test_scripted_transport_satisfies_protocol(self) -> None:
        assert isinstance(ScriptedTransport(200), Transport)

    def test_single_attempt_without_policies(self) -> None:
        transport = ScriptedTransport(503)
        client = Client(transport)
        response = client.send(_request())
        assert response.status_code == 503
        assert transport.calls == 1
        assert transport.retry_values == ["0"]

    def test_allow_without_breaker_is_always_true(self) -> None:
        client = Client(ScriptedTransport(500))
        assert client.breaker is None
        for _ in range(20):
            client.send(_request())
        assert client.allow() is True

    def test_retries_until_success(self) -> None:
        transport = ScriptedTransport(500, httpx.ConnectError("refused"), 200)
        sleep = RecordingSleep()
        client = Client(
            transport, RetryPolicy(backoff=SequenceBackoff(0.1, 0.2), max_retry=4), sleep=sleep
        )
        response = client.send(_request())
        assert response.status_code == 200
        assert transport.retry_values == ["0", "1", "2"]
        assert sleep.delays == [0.1, 0.2]

    def test_last_server_error_is_returned_not_raised(self) -> None:
        transport = ScriptedTransport(httpx.ConnectError("a"), 503)
        client = Client(transport, RetryPolicy(max_retry=1), sleep=RecordingSleep())
        response = client.send(_request())
        assert response.status_code == 503

    def test_last_transport_error_is_raised_unchanged(self) -> None:
        last = httpx.ReadTimeout("too slow")
        transport = ScriptedTransport(500, last)
        client = Client(transport, RetryPolicy(max_retry=1), sleep=RecordingSleep())
        with pytest.raises(httpx.ReadTimeout) as exc_info:
            client.send(_request())
        assert exc_info.value is last

    def test_execute_returns_outcome_without_raising(self) -> None:
        client = Client(ScriptedTransport(httpx.ConnectError("down")))
        outcome = client.execute(_request())
        assert isinstance(outcome.error, httpx.ConnectError)
        assert outcome.verdict is Verdict.TRANSPORT_ERROR

    def test_successive_sends_see_the_same_delays(self) -> None:
        sleep = RecordingSleep()
        policy = RetryPolicy(backoff=ExponentialBackoff(1.0, 30.0, jitter=Jitter.NONE), max_retry=2)
        client = Client(ScriptedTransport(500), policy, sleep=sleep)
        client.send(_request())
        client.send(_request())
        assert sleep.delays == [1.0, 2.0, 1.0, 2.0]

    def test_verb_helpers_build_requests(self) -> None:
        transport = ScriptedTransport(200)
        client = Client(transport)
        client.get("http://svc/a")
        client.post("http://svc/b", json={"k": 1})
        client.put("http://svc/c")
        client.patch("http://svc/d")
        client.delete("http://svc/e")
        assert [r.method for r in transport.requests] == ["GET", "POST", "PUT", "PATCH", "DELETE"]
        assert json.loads(transport.requests[1].content) == {"k": 1}

    def test_client_kwargs_rejected_with_transport(self) -> None:
        with pytest.raises(ValueError):
            Client(ScriptedTransport(200), timeout=5.0)


# ---------------------------------------------------------------------------
# Default httpx transport
# ---------------------------------------------------------------------------

class TestClientOverHttpx:
    @respx.mock
    def test_retries_over_owned_httpx_client(self) -> None:
        seen: list[str | None] = []
        responses = iter([httpx.Response(502), httpx.Response(200, json={"ok": True})])

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers.get(DEFAULT_RETRY_HEADER))
            return next(responses)

        respx.get("http://svc/items").mock(side_effect=handler)
        with Client(retry_policy=RetryPolicy(max_retry=2), sleep=RecordingSleep()) as client:
            response = client.get("http://svc/items")
        assert response.json() == {"ok": True}
        assert seen == ["0", "1"]

    @respx.mock
    def test_base_url_from_client_kwargs(self) -> None:
        route = respx.get("http://svc/api/ping").mock(return_value=httpx.Response(204))
        with Client(base_url="http://svc/api") as client:
            assert client.get("/ping").status_code == 204
        assert route.called

    def test_unsupported_scheme_surfaces_after_retries(self) -> None:
        sleep = RecordingSleep()
        with Client(retry_policy=RetryPolicy(max_retry=2), sleep=sleep) as client:
            with pytest.raises(httpx.UnsupportedProtocol):
                client.get("invalid://svc/items")
        assert len(sleep.delays) == 2

    def test_close_only_closes_owned_transport(self) -> None:
        transport = ScriptedTransport(200)
        with Client(transport):
            pass
        assert transport.closed is False

        owned = Client()
        owned.close()
        assert owned._transport.is_closed  # type: ignore[attr-defined]


# ---------------------------------------------------------------------------
# Breaker gating
# ---------------------------------------------------------------------------

class TestClientBreaker:
    def test_breaker_trips_and_rejection_is_last_outcome(self) -> None:
        transport = ScriptedTransport(500)
        client = Client(
            transport, RetryPolicy(max_retry=3), _trip_fast_policy(), sleep=RecordingSleep()
        )
        with pytest.raises(CircuitOpenError) as exc_info:
            client.send(_request())
        assert exc_info.value.circuit_name == "svc"
        # Attempts 2 and 3 were rejected without touching the transport.
        assert transport.calls == 2
        assert transport.retry_values == ["0", "1"]
        assert client.breaker is not None
        assert client.breaker.state is CircuitBreakerState.OPEN
        assert client.allow() is False

    def test_rejections_use_retry_budget_with_narrowed_exceptions(self) -> None:
        transport = ScriptedTransport(500)
        sleep = RecordingSleep()
        client = Client(
            transport,
            RetryPolicy(max_retry=3, retryable_exceptions=(httpx.TransportError,)),
            CircuitBreakerPolicy(min_requests=1, min_consecutive_failures=1, failure_percentage=100.0),
            sleep=sleep,
        )
        outcome = client.execute(_request())
        assert outcome.verdict is Verdict.REJECTED
        assert outcome.attempt == 3
        assert transport.calls == 1
        assert transport.retry_values == ["0"]
        assert len(sleep.delays) == 3
        with pytest.raises(CircuitOpenError):
            outcome.result()

    def test_allow_does_not_use_half_open_slots(self) -> None:
        breaker = CircuitBreaker(_trip_fast_policy(max_half_open_requests=2))
        breaker.record(False)
        breaker.record(False)
        breaker.half_open()
        transport = ScriptedTransport(200)
        client = Client(transport, breaker=breaker)
        assert [client.allow() for _ in range(3)] == [True, True, True]
        assert client.send(_request()).status_code == 200
        assert transport.calls == 1
        assert breaker.state is CircuitBreakerState.HALF_OPEN
        assert client.allow() is True

    def test_server_error_on_final_attempt_is_returned(self) -> None:
        transport = ScriptedTransport(500)
        client = Client(
            transport,
            RetryPolicy(max_retry=1),
            _trip_fast_policy(min_requests=10, min_consecutive_failures=10),
            sleep=RecordingSleep(),
        )
        response = client.send(_request())
        assert response.status_code == 500
        assert client.breaker is not None
        assert client.breaker.counts.total_failures == 2

    def test_open_breaker_never_calls_transport(self) -> None:
        breaker = CircuitBreaker(_trip_fast_policy())
        breaker.record(False)
        breaker.record(False)
        transport = ScriptedTransport(200)
        client = Client(transport, RetryPolicy(max_retry=2), breaker=breaker, sleep=RecordingSleep())
        with pytest.raises(CircuitOpenError):
            client.send(_request())
        assert transport.calls == 0

    def test_shared_breaker_across_clients(self) -> None:
        breaker = CircuitBreaker(_trip_fast_policy())
        failing = Client(ScriptedTransport(500), breaker=breaker)
        healthy = Client(ScriptedTransport(200), breaker=breaker)
        failing.send(_request())
        failing.send(_request())
        assert healthy.allow() is False
        with pytest.raises(CircuitOpenError):
            healthy.send(_request())

    def test_successes_keep_breaker_closed(self) -> None:
        client = Client(ScriptedTransport(200), breaker_policy=_trip_fast_policy())
        for _ in range(10):
            assert client.send(_request()).status_code == 200
        assert client.breaker is not None
        assert client.breaker.state is CircuitBreakerState.CLOSED
        assert client.breaker.counts.requests == 10

    def test_breaker_and_policy_are_exclusive(self) -> None:
        with pytest.raises(ValueError):
            Client(
                ScriptedTransport(200),
                breaker_policy=_trip_fast_policy(),
                breaker=CircuitBreaker(),
            )


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class TestClientFromSettings:
    def test_from_settings_wires_retry_and_breaker(self) -> None:
        settings = ClientSettings(
            max_retry=2,
            backoff="constant",
            backoff_delay=0.05,
            retry_header="X-Try",
            breaker_enabled=True,
            breaker_name="orders",
            min_requests=100,
        )
        transport = ScriptedTransport(503, retry_header="X-Try")
        sleep = RecordingSleep()
        client = Client.from_settings(settings, transport, sleep=sleep)
        response = client.send(_request())
        assert response.status_code == 503
        assert transport.retry_values == ["0", "1", "2"]
        assert sleep.delays == [0.05, 0.05]
        assert client.retry_policy.max_retry == 2
        assert client.breaker is not None
        assert client.breaker.name == "orders"

    def test_from_settings_without_breaker(self) -> None:
        client = Client.from_settings(ClientSettings(), ScriptedTransport(200))
        assert client.breaker is None
        assert client.retry_policy.max_retry == 0

    def test_failure_threshold_from_settings(self) -> None:
        settings = ClientSettings(max_retry=1, failure_status_threshold=400)
        transport = ScriptedTransport(404, 200)
        client = Client.from_settings(settings, transport, sleep=RecordingSleep())
        assert client.send(_request()).status_code == 200
        assert transport.calls == 2
