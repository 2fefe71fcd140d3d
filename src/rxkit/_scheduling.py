"""Background emission bookkeeping — the loop-facing side of rxkit.

Producer callbacks, timers and replays push values from plain (non-async)
code. Those pushes run as background tasks on the running event loop. The
task set keeps strong references until each task finishes, and a done
callback routes failures to the configured error handler.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger("rxkit.scheduling")

ErrorHandler = Callable[[BaseException], None]

# Tasks started by spawn() that have not finished yet.
_background: set[asyncio.Future] = set()

_error_handler: ErrorHandler | None = None


def set_error_handler(handler: ErrorHandler | None) -> None:
    """Set the global handler for exceptions raised by background emissions.

    Call once at startup:
        rxkit.set_error_handler(sentry_sdk.capture_exception)

    Passing None restores the default, which logs the exception.
    """
    global _error_handler
    _error_handler = handler


def spawn(awaitable: Awaitable) -> asyncio.Future:
    """Run an awaitable in the background on the running loop."""
    task = asyncio.ensure_future(awaitable)
    _background.add(task)
    task.add_done_callback(_finished)
    return task


def _finished(task: asyncio.Future) -> None:
    _background.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error is None:
        return
    if _error_handler is not None:
        _error_handler(error)
    else:
        logger.error("Background emission failed", exc_info=error)


def spawn_after(previous: asyncio.Future | None, awaitable: Awaitable) -> asyncio.Future:
    """spawn(awaitable), started only once previous has finished."""

    async def run():
        if previous is not None and not previous.done():
            await asyncio.wait([previous])
        return await awaitable

    return spawn(run())


def call_later(delay: float, fn: Callable, *args) -> asyncio.TimerHandle:
    """Schedule a plain callback on the running loop after delay seconds."""
    return asyncio.get_running_loop().call_later(delay, fn, *args)


def get_pending_count() -> int:
    """Number of background emissions still running. Useful for testing."""
    return len(_background)


async def settle() -> None:
    """Wait until every background emission, including ones they start, is done."""
    while _background:
        await asyncio.wait(list(_background))


async def sleep(timeout: float = 1.0) -> None:
    """Suspend for timeout seconds (default one second)."""
    await asyncio.sleep(timeout)
