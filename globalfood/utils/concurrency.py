"""Shared concurrency primitives for provider fan-out.

Two helpers are exposed:

1. **throttled_gather** -- ``asyncio.gather`` with an optional semaphore
   wrapped around each awaitable.  The aggregator creates one semaphore per
   search so that a burst of providers never exceeds ``max_concurrency``
   in-flight requests, and semaphores are never shared across event loops.

2. **bounded_call** -- awaits a single coroutine with a deadline and turns an
   expired deadline into the caller's chosen exception, so a hung provider
   only affects its own slot in the fan-out.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

_T = TypeVar("_T")


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore | None = None,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently with optional semaphore throttling.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Optional semaphore for concurrency control.  When ``None`` every
        awaitable starts immediately.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """
    if semaphore is None:
        return await asyncio.gather(*coros, return_exceptions=return_exceptions)

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)


async def bounded_call(
    coro: Awaitable[_T],
    timeout: float | None,
    on_timeout: Callable[[], BaseException],
) -> _T:
    """Await *coro*, raising ``on_timeout()`` if it exceeds *timeout* seconds.

    A ``timeout`` of ``None`` waits indefinitely.
    """
    if timeout is None:
        return await coro
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise on_timeout() from exc
