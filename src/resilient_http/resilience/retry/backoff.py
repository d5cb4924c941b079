"""Resilience – backoff strategies.

A backoff strategy answers one question: how long to wait before the next
attempt. The retry executor calls :meth:`BackoffStrategy.next_interval` once
per retry and never tells it which attempt is next, so strategies that grow
their delay count the calls themselves.

A strategy configured on a :class:`RetryPolicy` is a template: the executor
calls :meth:`BackoffStrategy.fresh` at the start of every run and draws delays
from that copy, so unrelated calls never advance each other's sequence.
A single instance used directly may still be shared by threads; stateful
strategies guard their counter with a lock.
"""
from __future__ import annotations

import abc
import copy
import random
import threading
from enum import Enum


class Jitter(str, Enum):
    """Randomisation applied on top of a computed delay."""

    NONE = "none"
    FULL = "full"  # uniform in [0, delay]
    EQUAL = "equal"  # uniform in [delay/2, delay]

    def apply(self, delay: float, rng: random.Random | None = None) -> float:
        uniform = (rng or random).uniform
        if self is Jitter.FULL:
            return uniform(0, delay)
        if self is Jitter.EQUAL:
            half = delay / 2
            return half + uniform(0, half)
        return delay


class BackoffStrategy(abc.ABC):
    """Compute the wait duration (seconds) before the next attempt."""

    @abc.abstractmethod
    def next_interval(self) -> float: ...

    def reset(self) -> None:
        """Forget previous calls. Stateless strategies have nothing to do."""

    def fresh(self) -> BackoffStrategy:
        """Return an independent copy whose sequence starts from the first delay."""
        clone = copy.copy(self)
        clone.reset()
        return clone


class NoBackoff(BackoffStrategy):
    """Retry immediately."""

    def next_interval(self) -> float:
        return 0.0


class ConstantBackoff(BackoffStrategy):
    """Fixed delay between attempts."""

    def __init__(self, delay: float = 1.0) -> None:
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        self._delay = delay

    def next_interval(self) -> float:
        return self._delay


class _CountingBackoff(BackoffStrategy):
    """Base for strategies whose delay depends on how often they were asked."""

    def __init__(self, base_delay: float, max_delay: float, jitter: Jitter) -> None:
        if base_delay < 0 or max_delay < 0:
            raise ValueError("base_delay and max_delay must be >= 0")
        self._base = base_delay
        self._max = max_delay
        self._jitter = jitter
        self._calls = 0
        self._lock = threading.Lock()

    def __copy__(self) -> _CountingBackoff:
        clone = object.__new__(type(self))
        clone.__dict__.update(self.__dict__)
        clone._lock = threading.Lock()
        return clone

    @abc.abstractmethod
    def _delay_for(self, n: int) -> float: ...

    def next_interval(self) -> float:
        with self._lock:
            n = self._calls
            self._calls += 1
        return self._jitter.apply(min(self._delay_for(n), self._max))

    def reset(self) -> None:
        with self._lock:
            self._calls = 0


class LinearBackoff(_CountingBackoff):
    """Delay grows linearly: ``base_delay * (n + 1)`` for the n-th call."""

    def __init__(
        self, base_delay: float = 0.5, max_delay: float = 30.0, jitter: Jitter = Jitter.NONE
    ) -> None:
        super().__init__(base_delay, max_delay, jitter)

    def _delay_for(self, n: int) -> float:
        return self._base * (n + 1)


class ExponentialBackoff(_CountingBackoff):
    """Delay grows exponentially: ``base_delay * multiplier^n`` for the n-th call."""

    def __init__(
        self,
        base_delay: float = 0.1,
        max_delay: float = 30.0,
        multiplier: float = 2.0,
        jitter: Jitter = Jitter.FULL,
    ) -> None:
        if multiplier < 1:
            raise ValueError(f"multiplier must be >= 1, got {multiplier}")
        super().__init__(base_delay, max_delay, jitter)
        self._multiplier = multiplier

    def _delay_for(self, n: int) -> float:
        # Avoids float overflow once the cap is reached.
        if self._base == 0:
            return 0.0
        delay = self._base
        for _ in range(n):
            delay *= self._multiplier
            if delay >= self._max:
                return self._max
        return delay


__all__ = [
    "BackoffStrategy",
    "ConstantBackoff",
    "ExponentialBackoff",
    "Jitter",
    "LinearBackoff",
    "NoBackoff",
]
