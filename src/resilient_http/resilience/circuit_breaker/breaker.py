"""Resilience – CircuitBreaker implementation."""
from __future__ import annotations

import dataclasses
import threading
import time
from typing import Awaitable, Callable

import httpx

from resilient_http.observability.logging import get_logger
from resilient_http.resilience.circuit_breaker.errors import CircuitOpenError
from resilient_http.resilience.circuit_breaker.policy import CircuitBreakerPolicy
from resilient_http.resilience.circuit_breaker.state import BreakerCounts, CircuitBreakerState
from resilient_http.resilience.classifier import FailureClassifier, Verdict

logger = get_logger(__name__)

StateChangeListener = Callable[[str, CircuitBreakerState, CircuitBreakerState], None]

_TRANSITION_EVENTS = {
    CircuitBreakerState.OPEN: "circuit_breaker.opened",
    CircuitBreakerState.HALF_OPEN: "circuit_breaker.half_open",
    CircuitBreakerState.CLOSED: "circuit_breaker.closed",
}


@dataclasses.dataclass
class _Counter:
    requests: int = 0
    total_failures: int = 0
    consecutive_failures: int = 0
    consecutive_successes: int = 0

    def on_success(self) -> None:
        self.requests += 1
        self.consecutive_successes += 1
        self.consecutive_failures = 0

    def on_failure(self) -> None:
        self.requests += 1
        self.total_failures += 1
        self.consecutive_failures += 1
        self.consecutive_successes = 0

    def snapshot(self) -> BreakerCounts:
        return BreakerCounts(
            requests=self.requests,
            total_failures=self.total_failures,
            consecutive_failures=self.consecutive_failures,
            consecutive_successes=self.consecutive_successes,
        )


@dataclasses.dataclass(frozen=True)
class _Transition:
    old: CircuitBreakerState
    new: CircuitBreakerState
    counts: BreakerCounts


class CircuitBreaker:
    """Thread-safe circuit breaker gating calls on rolling failure counts.

    Every read-evaluate-write on the counters and the state happens under a
    single :class:`threading.Lock`. The lock is never held while the guarded
    function runs, so the same breaker can be shared by threads and by
    coroutines on an event loop.

    Outcomes are tagged with the state *generation* they were admitted in;
    a call that completes after the breaker changed state does not count
    towards the new state.
    """

    def __init__(
        self,
        policy: CircuitBreakerPolicy | None = None,
        classifier: FailureClassifier | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: StateChangeListener | None = None,
    ) -> None:
        self._policy = policy or CircuitBreakerPolicy()
        self._classifier = classifier or FailureClassifier()
        self._clock = clock
        self._on_state_change = on_state_change
        self._state = CircuitBreakerState.CLOSED
        self._counter = _Counter()
        self._generation = 0
        self._trials_admitted = 0
        self._opened_at: float | None = None
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._policy.name

    @property
    def policy(self) -> CircuitBreakerPolicy:
        return self._policy

    @property
    def state(self) -> CircuitBreakerState:
        transitions: list[_Transition] = []
        with self._lock:
            state = self._current_state(transitions)
        self._notify(transitions)
        return state

    @property
    def counts(self) -> BreakerCounts:
        with self._lock:
            return self._counter.snapshot()

    # ── Admission and outcome recording ──────────────────────────────

    def allow(self) -> bool:
        """Admit one attempt, or refuse it without side effects on the counts.

        In HALF_OPEN an admission takes a trial slot, so every ``True`` must be
        followed by :meth:`record` with the attempt's outcome. Use
        :meth:`would_allow` to ask without admitting.
        """
        try:
            self._before_call()
        except CircuitOpenError:
            return False
        return True

    def would_allow(self) -> bool:
        """Report whether an attempt would be admitted now, without taking a slot."""
        transitions: list[_Transition] = []
        with self._lock:
            state = self._current_state(transitions)
            if state is CircuitBreakerState.OPEN:
                permitted = False
            elif state is CircuitBreakerState.HALF_OPEN:
                permitted = self._trials_admitted < self._policy.max_half_open_requests
            else:
                permitted = True
        self._notify(transitions)
        return permitted

    def record(self, outcome: Verdict | bool) -> None:
        """Record the outcome of an attempt admitted in the current state.

        *outcome* is a :class:`Verdict` or a bool where ``True`` means success.
        """
        success = not outcome.failed if isinstance(outcome, Verdict) else bool(outcome)
        with self._lock:
            generation = self._generation
        self._after_call(generation, success)

    def call(self, func: Callable[[], httpx.Response]) -> httpx.Response:
        """Run *func* behind the breaker.

        Raises :class:`CircuitOpenError` without invoking *func* when the
        breaker refuses admission. A response classified as a server error
        is recorded as a failure and still returned.
        """
        generation = self._before_call()
        try:
            response = func()
        except Exception as exc:
            self._after_call(generation, not self._classifier.classify(None, exc).failed)
            raise
        except BaseException:
            self._release(generation)
            raise
        self._after_call(generation, not self._classifier.classify(response).failed)
        return response

    async def call_async(self, func: Callable[[], Awaitable[httpx.Response]]) -> httpx.Response:
        """Coroutine counterpart of :meth:`call`."""
        generation = self._before_call()
        try:
            response = await func()
        except Exception as exc:
            self._after_call(generation, not self._classifier.classify(None, exc).failed)
            raise
        except BaseException:
            self._release(generation)
            raise
        self._after_call(generation, not self._classifier.classify(response).failed)
        return response

    # ── Manual control ───────────────────────────────────────────────

    def reset(self) -> None:
        """Force CLOSED with zeroed counters."""
        transitions: list[_Transition] = []
        with self._lock:
            self._set_state(CircuitBreakerState.CLOSED, transitions)
        self._notify(transitions)

    def half_open(self) -> None:
        """Start a trial batch now if the breaker is OPEN."""
        transitions: list[_Transition] = []
        with self._lock:
            if self._state is CircuitBreakerState.OPEN:
                self._set_state(CircuitBreakerState.HALF_OPEN, transitions)
        self._notify(transitions)

    # ── Internals (callers hold the lock unless stated otherwise) ────

    def _before_call(self) -> int:
        transitions: list[_Transition] = []
        with self._lock:
            state = self._current_state(transitions)
            generation = self._generation
            if state is CircuitBreakerState.OPEN:
                rejected: CircuitBreakerState | None = state
            elif (
                state is CircuitBreakerState.HALF_OPEN
                and self._trials_admitted >= self._policy.max_half_open_requests
            ):
                rejected = state
            else:
                rejected = None
                if state is CircuitBreakerState.HALF_OPEN:
                    self._trials_admitted += 1
        self._notify(transitions)
        if rejected is not None:
            logger.debug("circuit_breaker.rejected", name=self.name, state=rejected.value)
            raise CircuitOpenError(self.name, rejected)
        return generation

    def _after_call(self, generation: int, success: bool) -> None:
        transitions: list[_Transition] = []
        with self._lock:
            state = self._current_state(transitions)
            if generation == self._generation:
                if success:
                    self._on_success(state, transitions)
                else:
                    self._on_failure(state, transitions)
        self._notify(transitions)

    def _release(self, generation: int) -> None:
        with self._lock:
            if (
                generation == self._generation
                and self._state is CircuitBreakerState.HALF_OPEN
                and self._trials_admitted > 0
            ):
                self._trials_admitted -= 1

    def _on_success(self, state: CircuitBreakerState, transitions: list[_Transition]) -> None:
        if state is CircuitBreakerState.OPEN:
            return
        self._counter.on_success()
        if state is CircuitBreakerState.HALF_OPEN:
            if self._counter.consecutive_successes >= self._policy.max_half_open_requests:
                self._set_state(CircuitBreakerState.CLOSED, transitions)
        elif self._ready_to_trip():
            self._set_state(CircuitBreakerState.OPEN, transitions)

    def _on_failure(self, state: CircuitBreakerState, transitions: list[_Transition]) -> None:
        if state is CircuitBreakerState.OPEN:
            return
        self._counter.on_failure()
        if state is CircuitBreakerState.HALF_OPEN or self._ready_to_trip():
            self._set_state(CircuitBreakerState.OPEN, transitions)

    def _ready_to_trip(self) -> bool:
        counter = self._counter
        policy = self._policy
        if counter.requests < policy.min_requests or counter.requests == 0:
            return False
        if counter.consecutive_failures >= policy.min_consecutive_failures:
            return True
        return counter.total_failures / counter.requests * 100 >= policy.failure_percentage

    def _current_state(self, transitions: list[_Transition]) -> CircuitBreakerState:
        timeout = self._policy.open_timeout_seconds
        if (
            self._state is CircuitBreakerState.OPEN
            and timeout is not None
            and self._opened_at is not None
            and self._clock() - self._opened_at >= timeout
        ):
            self._set_state(CircuitBreakerState.HALF_OPEN, transitions)
        return self._state

    def _set_state(self, new: CircuitBreakerState, transitions: list[_Transition]) -> None:
        old = self._state
        counts = self._counter.snapshot()
        self._state = new
        self._generation += 1
        self._counter = _Counter()
        self._trials_admitted = 0
        self._opened_at = self._clock() if new is CircuitBreakerState.OPEN else None
        if old is not new:
            transitions.append(_Transition(old, new, counts))

    def _notify(self, transitions: list[_Transition]) -> None:
        # Runs outside the lock so listeners may call back into the breaker.
        for transition in transitions:
            log = logger.warning if transition.new is CircuitBreakerState.OPEN else logger.info
            log(
                _TRANSITION_EVENTS[transition.new],
                name=self.name,
                from_state=transition.old.value,
                **dataclasses.asdict(transition.counts),
            )
            if self._on_state_change is not None:
                self._on_state_change(self.name, transition.old, transition.new)


__all__ = ["CircuitBreaker", "StateChangeListener"]
