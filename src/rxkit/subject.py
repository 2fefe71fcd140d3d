"""Subjects — push sources that external code feeds with next().

A Subject multicasts each value to its current subscribers, in
subscription order. next() is awaitable and completes once every
subscriber (including async ones) has finished with the value.

A BehaviorSubject also keeps the last pushed value, readable at any time
through .data.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Generic, Iterable, TypeVar

from rxkit._scheduling import spawn
from rxkit.emitter import EventEmitter
from rxkit.observer import Disposer, IteratorContext, Observer

T = TypeVar("T")
U = TypeVar("U")

SUBJECT_EVENT = "subject"


class Subject(Generic[T]):
    """Multicast push source."""

    def __init__(self) -> None:
        self._emitter = EventEmitter()

    @property
    def has_listeners(self) -> bool:
        return self._emitter.has_listeners

    def subscribe(self, callback: Callable[[T], Any]) -> Disposer:
        """Register callback. Returns an idempotent unsubscribe function."""
        self._emitter.subscribe(SUBJECT_EVENT, callback)
        subscribed = [True]

        def unsubscribe() -> None:
            if subscribed[0]:
                subscribed[0] = False
                self._emitter.unsubscribe(SUBJECT_EVENT, callback)

        return unsubscribe

    def once(self, callback: Callable[[T], Any]) -> Disposer:
        """Register callback for the next value only."""
        return self._emitter.once(SUBJECT_EVENT, callback)

    def unsubscribe_all(self) -> None:
        self._emitter.unsubscribe_all()

    async def next(self, data: T) -> None:
        """Push data to every subscriber and wait for all of them."""
        await self._emitter.emit(SUBJECT_EVENT, data)

    def to_observer(self) -> Observer[T]:
        """Observer view that subscribes here while it has listeners."""
        unsubscribe_ref: list[Disposer | None] = [None]

        def dispose() -> None:
            if unsubscribe_ref[0] is not None:
                unsubscribe_ref[0]()
                unsubscribe_ref[0] = None

        observer: Observer[T] = Observer(dispose)

        def connect_upstream(observer: Observer[T]) -> None:
            unsubscribe_ref[0] = self.subscribe(observer.emit)

        observer._on_connect(connect_upstream)
        return observer

    # --- Observer shortcuts: each builds on a fresh to_observer() ---

    def map(self, fn: Callable[[T], U]) -> Observer[U]:
        return self.to_observer().map(fn)

    def flat_map(self, fn: Callable[[T], Iterable[U]]) -> Observer[U]:
        return self.to_observer().flat_map(fn)

    def reduce(self, fn: Callable[[U, T], U], begin: U) -> Observer[U]:
        return self.to_observer().reduce(fn, begin)

    def map_async(self, fn, fallback=None) -> Observer:
        return self.to_observer().map_async(fn, fallback)

    def filter(self, fn: Callable[[T], bool]) -> Observer[T]:
        return self.to_observer().filter(fn)

    def tap(self, fn: Callable[[T], Any]) -> Observer[T]:
        return self.to_observer().tap(fn)

    def operator(self, fn: Callable[[Observer[T]], Observer[U]]) -> Observer[U]:
        return self.to_observer().operator(fn)

    def split(self) -> Observer[tuple]:
        return self.to_observer().split()

    def debounce(self, delay: float = 1.0) -> Observer[T]:
        return self.to_observer().debounce(delay)

    def delay(self, delay: float = 1.0) -> Observer[T]:
        return self.to_observer().delay(delay)

    def repeat(self, interval: float = 1.0) -> Observer[T]:
        return self.to_observer().repeat(interval)

    def merge(self, other: Observer[U]) -> Observer[T | U]:
        return self.to_observer().merge(other)

    def to_future(self):
        return self.to_observer().to_future()

    def to_iterator_context(self) -> IteratorContext[T]:
        return self.to_observer().to_iterator_context()

    def __repr__(self) -> str:
        count = len(self._emitter.get_listeners(SUBJECT_EVENT))
        return f"{type(self).__name__}(subscribers={count})"


class BehaviorSubject(Subject[T]):
    """A Subject that remembers its last value.

    Usage:
        depth = BehaviorSubject(0)
        depth.data            # 0
        await depth.next(3)
        depth.data            # 3
    """

    def __init__(self, data: T | None = None) -> None:
        super().__init__()
        self._data = data

    @property
    def data(self) -> T | None:
        return self._data

    def next(self, data: T) -> Awaitable[None]:
        """Store data now, then broadcast it. Await the result to wait for subscribers."""
        self._data = data
        return super().next(data)

    def to_observer(self) -> Observer[T]:
        """Observer view that also replays the current value to its first listener.

        The replay is scheduled on the loop right after the first listener
        connects; it is skipped while the cell holds None.
        """
        observer = super().to_observer()

        def replay(observer: Observer[T]) -> None:
            if self._data is not None:
                spawn(observer.emit(self._data))

        observer._on_connect(replay)
        return observer

    def __repr__(self) -> str:
        return f"BehaviorSubject({self._data!r})"
