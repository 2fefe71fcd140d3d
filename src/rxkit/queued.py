"""queued() — run an async function one call at a time, in call order.

Calls made while another is running wait in a FIFO and start as soon as
the previous one finishes, whether it returned or raised. A failing call
rejects only its own caller. A body cancelled from the inside resolves its
caller with CANCELED and the queue moves on.

clear() drops the calls that have not started yet: their callers receive
CANCELED. cancel() also abandons the running call: its caller receives
CANCELED right away while the body runs to completion in the background
(cancellation never interrupts a running body). The wrapper keeps working
afterwards.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Generic, ParamSpec, TypeVar

from rxkit._scheduling import spawn
from rxkit.result import CANCELED, Canceled

logger = logging.getLogger("rxkit.queued")

P = ParamSpec("P")
R = TypeVar("R")

_Entry = tuple[tuple, dict, asyncio.Future]


class QueuedFn(Generic[P, R]):
    """Callable wrapper returned by queued()."""

    def __init__(self, fn: Callable[P, Awaitable[R]]) -> None:
        functools.update_wrapper(self, fn)
        self._fn = fn
        self._pending: deque[_Entry] = deque()
        self._in_flight: asyncio.Future | None = None
        self._running = False

    @property
    def pending_count(self) -> int:
        """Calls waiting for their turn (the running one excluded)."""
        return len(self._pending)

    @property
    def is_running(self) -> bool:
        return self._running

    async def __call__(self, *args: P.args, **kwargs: P.kwargs) -> R | Canceled:
        future = asyncio.get_running_loop().create_future()
        self._pending.append((args, kwargs, future))
        if not self._running:
            self._running = True
            spawn(self._drain())
        return await future

    async def _drain(self) -> None:
        try:
            while self._pending:
                args, kwargs, future = self._pending.popleft()
                if future.done():
                    continue  # caller went away, or cleared
                self._in_flight = future
                try:
                    result = await self._fn(*args, **kwargs)
                except asyncio.CancelledError:
                    task = asyncio.current_task()
                    if task is not None and task.cancelling():
                        # the drain itself is being cancelled: nobody will run the rest
                        if not future.done():
                            future.set_result(CANCELED)
                        self.clear()
                        raise
                    # the body was cancelled from inside; only this call is lost
                    logger.debug("Queued call was cancelled", exc_info=True)
                    if not future.done():
                        future.set_result(CANCELED)
                except Exception as error:
                    if not future.done():
                        future.set_exception(error)
                    else:
                        logger.debug("Abandoned queued call failed", exc_info=True)
                else:
                    if not future.done():
                        future.set_result(result)
                finally:
                    self._in_flight = None
        finally:
            self._running = False

    def clear(self) -> None:
        """Resolve every not-yet-started call with CANCELED, without running it."""
        while self._pending:
            _, _, future = self._pending.popleft()
            if not future.done():
                future.set_result(CANCELED)

    def cancel(self) -> None:
        """clear(), and resolve the running call with CANCELED too."""
        self.clear()
        if self._in_flight is not None and not self._in_flight.done():
            self._in_flight.set_result(CANCELED)

    def __repr__(self) -> str:
        state = "running" if self._running else "idle"
        return f"QueuedFn({self._fn.__name__}, {state}, pending={len(self._pending)})"


def queued(fn: Callable[P, Awaitable[R]]) -> QueuedFn[P, R]:
    """Decorator/factory serializing calls to an async function.

    Usage:
        @queued
        async def save(record):
            await db.write(record)

        await asyncio.gather(save(a), save(b), save(c))  # written a, b, c
    """
    return QueuedFn(fn)
