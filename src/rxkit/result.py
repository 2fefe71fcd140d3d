"""Cancellation marker returned in place of a value.

Wrappers that skip or abandon work (queued, lock, cancelable) resolve with
CANCELED instead of raising. It is a singleton compared by identity and is
falsy, so ``if result:`` reads naturally for truthy payloads, but prefer
``is_canceled(result)`` when the payload itself may be falsy.
"""

from __future__ import annotations

from typing import Any


class Canceled:
    """Type of the CANCELED marker. Only one instance exists."""

    __slots__ = ()
    _instance: Canceled | None = None

    def __new__(cls) -> Canceled:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "CANCELED"

    def __reduce__(self):
        return (Canceled, ())


CANCELED = Canceled()


def is_canceled(value: Any) -> bool:
    return value is CANCELED
