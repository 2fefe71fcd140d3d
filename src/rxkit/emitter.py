"""EventEmitter — keyed, ordered multi-listener pub/sub.

The substrate under Observer and Subject delivery. Listeners for a key
fire in subscription order; emit() walks a snapshot of the list taken when
it starts, so listeners added or removed mid-emission do not affect it.
Awaitable listener results are awaited before the next listener runs.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Hashable

EventKey = Hashable
Listener = Callable[..., Any]


class EventEmitter:
    """Ordered listener lists keyed by event name."""

    __slots__ = ("_events",)

    def __init__(self) -> None:
        self._events: dict[EventKey, list[Listener]] = {}

    @property
    def has_listeners(self) -> bool:
        return any(self._events.values())

    def get_listeners(self, key: EventKey) -> list[Listener]:
        """Snapshot of the listeners registered for key."""
        return list(self._events.get(key, ()))

    def subscribe(self, key: EventKey, callback: Listener) -> None:
        self._events.setdefault(key, []).append(callback)

    def unsubscribe(self, key: EventKey, callback: Listener) -> None:
        listeners = self._events.get(key)
        if not listeners:
            return
        try:
            listeners.remove(callback)
        except ValueError:
            return  # not registered
        if not listeners:
            del self._events[key]

    def unsubscribe_all(self) -> None:
        self._events.clear()

    def once(self, key: EventKey, callback: Listener) -> Callable[[], None]:
        """Register callback for the next emission of key only.

        The wrapper removes itself before calling callback, so an emit
        issued from inside the handler cannot reach it again.
        Returns a function that cancels the registration.
        """

        def wrapper(*args: Any) -> Any:
            self.unsubscribe(key, wrapper)
            return callback(*args)

        self.subscribe(key, wrapper)
        return lambda: self.unsubscribe(key, wrapper)

    async def emit(self, key: EventKey, *args: Any) -> None:
        """Call every listener of key in order, awaiting awaitable results."""
        for callback in self.get_listeners(key):
            result = callback(*args)
            if inspect.isawaitable(result):
                await result

    def __repr__(self) -> str:
        counts = {key: len(listeners) for key, listeners in self._events.items()}
        return f"EventEmitter({counts!r})"
