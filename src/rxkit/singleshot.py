"""singleshot() — call a function once and keep returning that result."""

from __future__ import annotations

import asyncio
import functools
import inspect
from typing import Any, Callable, Generic, TypeVar

R = TypeVar("R")

_UNSET = object()


class SingleshotFn(Generic[R]):
    """Callable wrapper returned by singleshot()."""

    def __init__(self, fn: Callable[..., R]) -> None:
        functools.update_wrapper(self, fn)
        self._fn = fn
        self._result: Any = _UNSET

    @property
    def has_run(self) -> bool:
        return self._result is not _UNSET

    def __call__(self, *args: Any, **kwargs: Any) -> R:
        if self._result is _UNSET:
            result = self._fn(*args, **kwargs)
            if inspect.isawaitable(result):
                # a future can be awaited by every later caller, a coroutine only once
                result = asyncio.ensure_future(result)
            self._result = result
        return self._result

    def clear(self) -> None:
        """Forget the result; the next call runs fn again."""
        self._result = _UNSET


def singleshot(fn: Callable[..., R]) -> SingleshotFn[R]:
    """Decorator/factory: run fn on the first call only, memoizing its result.

    Arguments of later calls are ignored until clear().

    Usage:
        @singleshot
        async def load_config():
            return await fetch_config()

        await load_config()   # fetches
        await load_config()   # same result, no fetch
    """
    return SingleshotFn(fn)
