"""debounce() — trailing-edge debounce for plain or async functions.

Each call replaces the pending arguments and restarts the timer; fn runs
once, delay seconds after the last call of a burst. An awaitable result is
run in the background. Needs a running event loop.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from typing import Any, Callable

from rxkit._scheduling import call_later, spawn


class DebouncedFn:
    """Callable wrapper returned by debounce()."""

    def __init__(self, fn: Callable[..., Any], delay: float) -> None:
        functools.update_wrapper(self, fn)
        self._fn = fn
        self._delay = delay
        self._timer: asyncio.TimerHandle | None = None
        self._args: tuple = ()
        self._kwargs: dict = {}

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._args, self._kwargs = args, kwargs
        self._timer = call_later(self._delay, self._fire)

    def _fire(self) -> None:
        self._timer = None
        args, kwargs = self._args, self._kwargs
        self._args, self._kwargs = (), {}
        result = self._fn(*args, **kwargs)
        if inspect.isawaitable(result):
            spawn(result)

    def pending(self) -> bool:
        """Whether a call is waiting for its timer."""
        return self._timer is not None

    def clear(self) -> None:
        """Drop the pending call."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._args, self._kwargs = (), {}

    def flush(self) -> None:
        """Run the pending call now, if there is one."""
        if self._timer is None:
            return
        self._timer.cancel()
        self._fire()


def debounce(fn: Callable[..., Any], delay: float = 1.0) -> DebouncedFn:
    """Wrap fn so bursts of calls collapse into one call with the last arguments.

    Usage:
        save_later = debounce(save, 0.5)
        save_later(draft1)
        save_later(draft2)   # only save(draft2) runs, 0.5s from now
    """
    return DebouncedFn(fn, delay)
