"""memoize() and cached() — result caches keyed by arguments.

memoize keeps one result per key computed from the arguments. cached
keeps only the latest result and recomputes when a comparison of the
previous and current arguments says they changed. Awaitable results are
stored as futures so the cached value can be awaited repeatedly.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from typing import Any, Callable, Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
R = TypeVar("R")

_UNSET = object()


def _storable(result: Any) -> Any:
    if inspect.isawaitable(result):
        return asyncio.ensure_future(result)
    return result


class MemoizedFn(Generic[K, R]):
    """Callable wrapper returned by memoize()."""

    def __init__(self, key: Callable[[tuple], K], fn: Callable[..., R]) -> None:
        functools.update_wrapper(self, fn)
        self._key = key
        self._fn = fn
        self._cache: dict[K, R] = {}

    def __call__(self, *args: Any) -> R:
        key = self._key(args)
        if key not in self._cache:
            self._cache[key] = _storable(self._fn(*args))
        return self._cache[key]

    def __contains__(self, key: K) -> bool:
        return key in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def clear(self, key: K | None = None) -> None:
        """Forget one key, or everything when key is None."""
        if key is None:
            self._cache.clear()
        else:
            self._cache.pop(key, None)

    def add(self, key: K, value: R) -> None:
        """Seed the cache with a known value."""
        self._cache[key] = value

    def remove(self, key: K) -> bool:
        """Forget key. Returns whether it was cached."""
        return self._cache.pop(key, _UNSET) is not _UNSET


def memoize(key: Callable[[tuple], K], fn: Callable[..., R]) -> MemoizedFn[K, R]:
    """Cache fn's result per key(args).

    Usage:
        user = memoize(lambda args: args[0], fetch_user)
        await user(42)   # fetches
        await user(42)   # cached
        user.clear(42)
    """
    return MemoizedFn(key, fn)


class CachedFn(Generic[R]):
    """Callable wrapper returned by cached()."""

    def __init__(self, changed: Callable[[tuple, tuple], bool], fn: Callable[..., R]) -> None:
        functools.update_wrapper(self, fn)
        self._changed = changed
        self._fn = fn
        self._args: tuple | None = None
        self._result: Any = _UNSET

    def __call__(self, *args: Any) -> R:
        if self._result is _UNSET or self._changed(self._args, args):
            self._result = _storable(self._fn(*args))
            self._args = args
        return self._result

    def clear(self) -> None:
        self._args = None
        self._result = _UNSET


def cached(changed: Callable[[tuple, tuple], bool], fn: Callable[..., R]) -> CachedFn[R]:
    """Keep fn's latest result until changed(previous_args, args) is true.

    Usage:
        layout = cached(lambda prev, cur: prev[0] != cur[0], compute_layout)
    """
    return CachedFn(changed, fn)
