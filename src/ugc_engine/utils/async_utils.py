"""Async utilities for running coroutines in sync contexts."""

import asyncio
import concurrent.futures
from collections.abc import Coroutine
from typing import Any, TypeVar

T = TypeVar("T")


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine from synchronous code.

    Stage functions, job handlers and download threads are synchronous but
    the provider adapters are async. The thread's event loop is reused and
    NOT closed after use, because httpx and google-genai clients may keep
    state bound to the loop that created them; closing it between sequential
    calls in one job causes "Event loop is closed" errors.

    When a loop is already running in this thread (async callers such as
    the API), the coroutine runs on a fresh loop in a helper thread.

    Args:
        coro: The coroutine to execute.

    Returns:
        The result of the coroutine.
    """
    try:
        running = asyncio.get_running_loop()
    except RuntimeError:
        running = None

    if running is not None:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
            return executor.submit(asyncio.run, coro).result()

    try:
        loop = asyncio.get_event_loop()
        if loop.is_closed():
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)
