"""
Tests for async_utils module.

Covers create_semaphore, run_sync, run_sync_limited and gather_limited.
"""

import threading
import time

import pytest

from blog_sync.core.async_utils import (
    create_semaphore,
    gather_limited,
    run_sync,
    run_sync_limited,
)


def _sync_add(a: int, b: int) -> int:
    """Simple sync function for testing."""
    return a + b


def _sync_identity(x):
    """Return input unchanged."""
    return x


async def test_run_sync_calls_function():
    """run_sync delegates to asyncio.to_thread with correct args."""
    result = await run_sync(_sync_add, 3, 4)
    assert result == 7


async def test_run_sync_passes_kwargs():
    """run_sync forwards keyword arguments."""

    def _kw_func(*, name: str) -> str:
        return f"hello {name}"

    result = await run_sync(_kw_func, name="world")
    assert result == "hello world"


async def test_run_sync_propagates_exceptions():
    def _boom():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        await run_sync(_boom)


async def test_create_semaphore_rejects_zero():
    with pytest.raises(ValueError, match="at least 1"):
        create_semaphore(0)


async def test_run_sync_limited_with_semaphore():
    """run_sync_limited acquires the semaphore before running."""
    semaphore = create_semaphore(2)

    result = await run_sync_limited(semaphore, _sync_add, 10, 20)

    assert result == 30
    # released again afterwards
    assert not semaphore.locked()


async def test_run_sync_limited_without_semaphore():
    """run_sync_limited falls back to unbounded when semaphore is None."""
    result = await run_sync_limited(None, _sync_add, 5, 6)
    assert result == 11


async def test_gather_limited_preserves_order():
    """gather_limited runs multiple coroutines and returns results in order."""
    semaphore = create_semaphore(3)
    coros = [
        run_sync_limited(semaphore, _sync_identity, i) for i in range(5)
    ]

    results = await gather_limited(coros)

    assert results == [0, 1, 2, 3, 4]


async def test_gather_limited_empty_list():
    """gather_limited handles empty coroutine list."""
    results = await gather_limited([])
    assert results == []


async def test_run_sync_limited_concurrency_bound():
    """run_sync_limited actually limits concurrency via semaphore."""
    semaphore = create_semaphore(2)
    max_concurrent = 0
    current_concurrent = 0
    lock = threading.Lock()

    def _track_concurrency(val):
        nonlocal max_concurrent, current_concurrent
        with lock:
            current_concurrent += 1
            if current_concurrent > max_concurrent:
                max_concurrent = current_concurrent
        time.sleep(0.05)  # Hold for a bit so others overlap
        with lock:
            current_concurrent -= 1
        return val

    coros = [
        run_sync_limited(semaphore, _track_concurrency, i) for i in range(6)
    ]
    results = await gather_limited(coros)

    assert results == [0, 1, 2, 3, 4, 5]
    assert max_concurrent <= 2
