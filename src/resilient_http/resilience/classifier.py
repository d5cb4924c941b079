"""Resilience – FailureClassifier and Verdict."""
from __future__ import annotations

import dataclasses
from enum import Enum

import httpx

DEFAULT_STATUS_THRESHOLD = 500


class Verdict(str, Enum):
    """Outcome of one attempt from the resilience layer's point of view."""

    SUCCESS = "SUCCESS"
    SERVER_ERROR = "SERVER_ERROR"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    REJECTED = "REJECTED"  # refused by a circuit breaker before reaching the transport

    @property
    def failed(self) -> bool:
        return self is not Verdict.SUCCESS


@dataclasses.dataclass(frozen=True)
class FailureClassifier:
    """Map a ``(response, error)`` pair to a :class:`Verdict`.

    Any exception is a transport failure. A response whose status code is at
    or above *status_threshold* is a server failure; the response itself is
    still handed back to the caller untouched.
    """

    status_threshold: int = DEFAULT_STATUS_THRESHOLD

    def classify(
        self,
        response: httpx.Response | None,
        error: BaseException | None = None,
    ) -> Verdict:
        if error is not None:
            return Verdict.TRANSPORT_ERROR
        if response is not None and response.status_code >= self.status_threshold:
            return Verdict.SERVER_ERROR
        return Verdict.SUCCESS


__all__ = ["DEFAULT_STATUS_THRESHOLD", "FailureClassifier", "Verdict"]
