"""Tests for the run_sync and run_sync_bounded helpers."""

import asyncio
import threading
import time

import pytest

from frontdesk_ops.core.async_utils import run_sync, run_sync_bounded


def _sync_add(a: int, b: int) -> int:
    return a + b


async def test_run_sync_calls_function():
    assert await run_sync(_sync_add, 3, 4) == 7


async def test_run_sync_passes_kwargs():
    def _kw_func(*, name: str) -> str:
        return f"hello {name}"

    assert await run_sync(_kw_func, name="world") == "hello world"


async def test_run_sync_uses_worker_thread():
    """The blocking call does not run on the event loop thread."""
    loop_thread = threading.get_ident()
    worker_thread = await run_sync(threading.get_ident)
    assert worker_thread != loop_thread


async def test_run_sync_propagates_exceptions():
    def _fail():
        raise LookupError("no such member")

    with pytest.raises(LookupError, match="no such member"):
        await run_sync(_fail)


async def test_bounded_returns_result_in_time():
    assert await run_sync_bounded(_sync_add, 1.0, 2, 5) == 7


async def test_bounded_times_out_on_hung_call():
    release = threading.Event()
    started = time.monotonic()

    with pytest.raises(asyncio.TimeoutError):
        await run_sync_bounded(release.wait, 0.05, 5)

    release.set()
    assert time.monotonic() - started < 2
