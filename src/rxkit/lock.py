"""lock() — a queued() function with a reentrant pause gate.

begin_lock() raises a depth counter; while it is above zero no call's body
runs. Calls made meanwhile wait in the queue and run in call order once
the depth is back to zero. Every begin_lock() needs a matching end_lock();
extra end_lock() calls leave the depth at zero.

end_lock() is also a barrier: after lowering the depth it pushes a no-op
call through the same queue and waits for it. Because the queue is strictly
ordered, it returns only after every call queued before it has run.

This is an ordering gate for cooperative code on one event loop, not a
mutual-exclusion primitive across threads.
"""

from __future__ import annotations

import asyncio
import functools
from typing import Awaitable, Callable, Generic, ParamSpec, TypeVar

from rxkit._scheduling import spawn
from rxkit._utils import first
from rxkit.queued import QueuedFn
from rxkit.result import Canceled
from rxkit.subject import BehaviorSubject

P = ParamSpec("P")
R = TypeVar("R")

# First argument of the barrier call pushed by end_lock().
_NEVER = object()


class LockedFn(Generic[P, R]):
    """Callable wrapper returned by lock()."""

    def __init__(self, fn: Callable[P, Awaitable[R]]) -> None:
        functools.update_wrapper(self, fn)
        self._fn = fn
        self._depth = 0
        self._depth_subject: BehaviorSubject[int] = BehaviorSubject(0)
        self._execute: QueuedFn = QueuedFn(self._run)

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def is_locked(self) -> bool:
        return self._depth > 0

    async def _wait_for_unlock(self) -> None:
        """Resolve once the broadcast depth is exactly zero."""
        unlocked = asyncio.get_running_loop().create_future()

        def handler(_depth: int | None = None) -> None:
            if self._depth_subject.data == 0:
                if not unlocked.done():
                    unlocked.set_result(None)
                return
            self._depth_subject.once(handler)

        handler()
        await unlocked

    async def _run(self, *args, **kwargs):
        await self._wait_for_unlock()
        if first(args) is _NEVER:
            return None
        return await self._fn(*args, **kwargs)

    async def __call__(self, *args: P.args, **kwargs: P.kwargs) -> R | Canceled:
        return await self._execute(*args, **kwargs)

    def begin_lock(self) -> None:
        self._depth += 1
        spawn(self._depth_subject.next(self._depth))

    async def end_lock(self) -> None:
        """Lower the depth, then wait until already-queued calls have run."""
        self._depth = max(self._depth - 1, 0)
        await self._depth_subject.next(self._depth)
        await self._execute(_NEVER)

    def clear(self) -> None:
        """Reset the depth to zero and drop the calls that have not started."""
        released = self._depth_subject
        self._depth = 0
        self._depth_subject = BehaviorSubject(0)
        # wake calls still parked on the old subject; they re-check the new one
        spawn(released.next(0))
        self._execute.clear()

    def cancel(self) -> None:
        """clear(), and abandon the running call's result."""
        self.clear()
        self._execute.cancel()

    def __repr__(self) -> str:
        return f"LockedFn({self._fn.__name__}, depth={self._depth})"


def lock(fn: Callable[P, Awaitable[R]]) -> LockedFn[P, R]:
    """Decorator/factory adding begin_lock()/end_lock() to a queued async function.

    Usage:
        @lock
        async def apply(change):
            ...

        apply.begin_lock()
        pending = asyncio.ensure_future(apply(change))  # waits
        await apply.end_lock()                          # apply(change) has run
    """
    return LockedFn(fn)
