"""Resilience – TenacityBackoff adapter.

Lets any ``tenacity`` wait strategy drive the delay between attempts::

    from tenacity import wait_exponential, wait_random
    backoff = TenacityBackoff(wait_exponential(multiplier=0.5, max=8) + wait_random(0, 1))
    policy = RetryPolicy(backoff=backoff, max_retry=4)
"""
from __future__ import annotations

import threading
from typing import Any

import tenacity

from resilient_http.resilience.retry.backoff import BackoffStrategy


class TenacityBackoff(BackoffStrategy):
    """Backoff strategy backed by a ``tenacity`` wait callable.

    Parameters
    ----------
    wait:
        A ``tenacity`` wait strategy such as
        ``tenacity.wait_exponential(multiplier=1, max=10)``.
        Defaults to ``wait_exponential(multiplier=0.1, max=30)``.

    Each :meth:`next_interval` call hands the wait strategy a
    :class:`tenacity.RetryCallState` whose ``attempt_number`` is the number
    of intervals requested so far, starting at 1.
    """

    def __init__(self, wait: Any = None) -> None:
        self._wait = wait or tenacity.wait_exponential(multiplier=0.1, max=30)
        self._retrying = tenacity.Retrying()
        self._attempts = 0
        self._lock = threading.Lock()

    def __copy__(self) -> TenacityBackoff:
        clone = TenacityBackoff(self._wait)
        clone._attempts = self._attempts
        return clone

    def next_interval(self) -> float:
        with self._lock:
            self._attempts += 1
            attempt_number = self._attempts
        retry_state = tenacity.RetryCallState(
            retry_object=self._retrying, fn=None, args=(), kwargs={}
        )
        retry_state.attempt_number = attempt_number
        return float(self._wait(retry_state))

    def reset(self) -> None:
        with self._lock:
            self._attempts = 0


__all__ = ["TenacityBackoff"]
