"""trycatch() — turn unexpected exceptions into a default value.

Exceptions that are instances of allowed_errors are re-raised. Anything
else is logged at DEBUG, passed to fallback when one is given, and replaced
with default_value. Coroutine functions get an async wrapper.
"""

from __future__ import annotations

import functools
import inspect
import logging
from typing import Any, Callable, Sequence

logger = logging.getLogger("rxkit.trycatch")

ErrorTypes = Sequence[type[BaseException]]


def trycatch(
    fn: Callable[..., Any],
    *,
    allowed_errors: ErrorTypes = (),
    fallback: Callable[[Exception], Any] | None = None,
    default_value: Any = None,
) -> Callable[..., Any]:
    """Wrap fn so that non-allowed exceptions return default_value.

    Usage:
        parse = trycatch(json.loads, allowed_errors=[TypeError], default_value={})
        parse("{oops")   # {}
        parse(None)      # raises TypeError
    """
    allowed = tuple(allowed_errors)

    def handle(error: Exception) -> Any:
        if allowed and isinstance(error, allowed):
            raise error
        logger.debug("trycatch(%s) swallowed an error", getattr(fn, "__name__", fn), exc_info=True)
        if fallback is not None:
            fallback(error)
        return default_value

    if inspect.iscoroutinefunction(fn):

        @functools.wraps(fn)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await fn(*args, **kwargs)
            except Exception as error:
                return handle(error)

        return async_wrapper

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except Exception as error:
            return handle(error)

    return wrapper
