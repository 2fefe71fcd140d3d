"""cancelable() — drop results of superseded calls.

Every call starts a new generation. When a call finishes after a newer
call has started (or after cancel()), its caller receives CANCELED instead
of the stale value, and a stale failure is swallowed the same way. The
underlying call is never interrupted.
"""

from __future__ import annotations

import functools
import logging
from typing import Awaitable, Callable, Generic, ParamSpec, TypeVar

from rxkit.result import CANCELED, Canceled

logger = logging.getLogger("rxkit.cancelable")

P = ParamSpec("P")
R = TypeVar("R")


class CancelableFn(Generic[P, R]):
    """Callable wrapper returned by cancelable()."""

    def __init__(self, fn: Callable[P, Awaitable[R]]) -> None:
        functools.update_wrapper(self, fn)
        self._fn = fn
        self._generation = 0

    async def __call__(self, *args: P.args, **kwargs: P.kwargs) -> R | Canceled:
        self._generation += 1
        generation = self._generation
        try:
            result = await self._fn(*args, **kwargs)
        except Exception:
            if generation != self._generation:
                logger.debug("Superseded call failed", exc_info=True)
                return CANCELED
            raise
        if generation != self._generation:
            return CANCELED
        return result

    def cancel(self) -> None:
        """Invalidate every call still in progress."""
        self._generation += 1


def cancelable(fn: Callable[P, Awaitable[R]]) -> CancelableFn[P, R]:
    """Decorator/factory: only the latest call of fn delivers its result.

    Usage:
        @cancelable
        async def search(query):
            return await api.search(query)

        first = asyncio.ensure_future(search("a"))
        second = await search("ab")
        await first   # CANCELED
    """
    return CancelableFn(fn)
