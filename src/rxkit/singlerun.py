"""singlerun() — at most one run of an async function at a time.

While a run is in progress every call gets the same awaitable. Once it
settles the next call starts a fresh run. status reports the state of the
latest run.
"""

from __future__ import annotations

import asyncio
import functools
from typing import Any, Awaitable, Callable, Generic, Literal, TypeVar

R = TypeVar("R")

Status = Literal["pending", "fulfilled", "rejected"]


class TrackedTask(Generic[R]):
    """An awaitable together with its settlement status."""

    __slots__ = ("target", "_status")

    def __init__(self, target: Awaitable[R]) -> None:
        self.target: asyncio.Future = asyncio.ensure_future(target)
        self._status: Status = "pending"
        self.target.add_done_callback(self._settle)

    @property
    def status(self) -> Status:
        return self._status

    def _settle(self, future: asyncio.Future) -> None:
        if future.cancelled() or future.exception() is not None:
            self._status = "rejected"
        else:
            self._status = "fulfilled"

    def __repr__(self) -> str:
        return f"TrackedTask({self._status})"


class SinglerunFn(Generic[R]):
    """Callable wrapper returned by singlerun()."""

    def __init__(self, fn: Callable[..., Awaitable[R]]) -> None:
        functools.update_wrapper(self, fn)
        self._fn = fn
        self._task: TrackedTask[R] | None = None

    @property
    def status(self) -> Literal["ready", "pending", "fulfilled", "rejected"]:
        return self._task.status if self._task is not None else "ready"

    def get_status(self) -> str:
        return self.status

    def __call__(self, *args: Any, **kwargs: Any) -> asyncio.Future:
        if self._task is None or self._task.status != "pending":
            self._task = TrackedTask(self._fn(*args, **kwargs))
        return self._task.target

    def clear(self) -> None:
        """Forget the latest run; status goes back to "ready"."""
        self._task = None


def singlerun(fn: Callable[..., Awaitable[R]]) -> SinglerunFn[R]:
    """Decorator/factory collapsing concurrent calls of fn into one run.

    Usage:
        @singlerun
        async def refresh():
            return await api.fetch_all()

        a, b = refresh(), refresh()   # one fetch, shared
        refresh.status                # "pending"
    """
    return SinglerunFn(fn)
