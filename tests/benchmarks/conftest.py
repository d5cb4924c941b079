"""conftest.py for benchmarks.

The event loop is session-scoped so every async benchmark shares one loop
and the ``asyncio.new_event_loop()`` startup cost stays out of the timings.
"""

from __future__ import annotations

import asyncio

import pytest


@pytest.fixture(scope="session")
def bench_loop():
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


@pytest.fixture(scope="session")
def run_async(bench_loop):
    """Execute a coroutine in the session event loop."""

    def _run(coro):
        return bench_loop.run_until_complete(coro)

    return _run
