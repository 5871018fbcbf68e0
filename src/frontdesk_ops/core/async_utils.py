"""Bridges from async handlers to the blocking cache, resolver and probes."""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Await ``func(*args, **kwargs)`` on a worker thread.

    Example:
        member = await run_sync(services.resolver.resolve, member_id)
    """
    return await asyncio.to_thread(func, *args, **kwargs)


async def run_sync_bounded(
    func: Callable[..., T], timeout: float, *args: Any, **kwargs: Any
) -> T:
    """Like ``run_sync`` but gives up after ``timeout`` seconds.

    Raises ``asyncio.TimeoutError`` on expiry. The worker thread itself
    cannot be cancelled and finishes in the background; its result is
    discarded.
    """
    return await asyncio.wait_for(
        asyncio.to_thread(func, *args, **kwargs), timeout
    )
