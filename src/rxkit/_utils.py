"""Small value helpers shared by the wrappers."""

from __future__ import annotations

from typing import Any, Sequence


def first(args: Sequence[Any]) -> Any:
    """First element of an argument list, or None when it is empty."""
    return args[0] if args else None
