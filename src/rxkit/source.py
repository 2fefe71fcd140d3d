"""Source — factories and fan-in combinators that build Observers.

Producers are plain callbacks: they receive a ``next`` function and may
return a cleanup callable. ``next`` schedules the emission on the running
loop and returns the scheduled task; emissions from one producer are
delivered in the order ``next`` was called.

Hot sources start their producer immediately. Cold sources start one
producer per subscription. multicast() shares a single underlying Observer
between all subscribers.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Awaitable, Callable, Generic, Sequence, TypeVar

from rxkit._scheduling import call_later, spawn, spawn_after
from rxkit.observer import Disposer, Observer
from rxkit.subject import BehaviorSubject, Subject

logger = logging.getLogger("rxkit.source")

T = TypeVar("T")
U = TypeVar("U")

Next = Callable[[Any], asyncio.Future]
Producer = Callable[[Next], "Disposer | None"]


def _make_next(observer: Observer) -> Next:
    """next() for a producer: queued emissions, delivered one after another."""
    last: list[asyncio.Future | None] = [None]

    def next_value(data: Any) -> asyncio.Future:
        last[0] = spawn_after(last[0], observer.emit(data))
        return last[0]

    return next_value


def _lazy(emitter: Producer) -> Observer:
    """Observer that runs emitter when its first listener connects."""
    cleanup_ref: list[Disposer | None] = [None]

    def dispose() -> None:
        if cleanup_ref[0] is not None:
            cleanup_ref[0]()
            cleanup_ref[0] = None

    observer: Observer = Observer(dispose)

    def start(observer: Observer) -> None:
        cleanup_ref[0] = emitter(_make_next(observer))

    observer._on_connect(start)
    return observer


class Unicast(Generic[T]):
    """Observer proxy: every access goes to a brand new factory() Observer.

    Each connect() or operator chain therefore owns an independent producer.
    """

    __slots__ = ("_factory",)

    is_unicasted = True

    def __init__(self, factory: Callable[[], Observer[T]]) -> None:
        self._factory = factory

    def __getattr__(self, name: str) -> Any:
        return getattr(self._factory(), name)

    def __repr__(self) -> str:
        return f"Unicast({self._factory!r})"


class Multicast(Generic[T]):
    """Observer proxy sharing one factory() Observer between all users.

    The shared Observer is created on first access. When it disposes (its
    last listener left) the next access creates a fresh one.
    """

    __slots__ = ("_factory", "_ref")

    is_multicasted = True

    def __init__(self, factory: Callable[[], Observer[T]]) -> None:
        self._factory = factory
        self._ref: Observer[T] | None = None

    def get_ref(self) -> Observer[T]:
        if self._ref is None or self._ref.is_disposed:
            self._ref = self._factory()
        return self._ref

    def __getattr__(self, name: str) -> Any:
        return getattr(self.get_ref(), name)

    def __repr__(self) -> str:
        return f"Multicast({self._ref!r})"


def create_hot(emitter: Producer) -> Observer:
    """Observer whose producer starts right away, listeners or not.

    The producer's cleanup runs when the Observer disposes.
    """
    cleanup_ref: list[Disposer | None] = [None]

    def dispose() -> None:
        if cleanup_ref[0] is not None:
            cleanup_ref[0]()
            cleanup_ref[0] = None

    observer: Observer = Observer(dispose)
    cleanup_ref[0] = emitter(_make_next(observer))
    return observer


def create_cold(emitter: Producer) -> Unicast:
    """Observer-like source whose producer runs once per subscription.

    Usage:
        def produce(next):
            handle = loop.call_later(1.0, next, "tick")
            return handle.cancel

        ticks = Source.create_cold(produce)
        ticks.connect(print)   # own producer
        ticks.connect(print)   # another, independent producer
    """
    return Unicast(lambda: _lazy(emitter))


create = create_cold


def unicast(factory: Callable[[], Observer[T]]) -> Unicast[T]:
    return Unicast(factory)


def multicast(factory: Callable[[], Observer[T]]) -> Multicast[T]:
    return Multicast(factory)


def merge(observers: Sequence[Observer]) -> Observer:
    """Forward every value of every input, in arrival order."""
    unsubscribes: list[Disposer] = []

    def dispose() -> None:
        for unsubscribe in unsubscribes:
            unsubscribe()
        unsubscribes.clear()

    merged: Observer = Observer(dispose)

    def connect_upstream(merged: Observer) -> None:
        for observer in observers:
            unsubscribes.append(observer.connect(merged.emit))

    merged._on_connect(connect_upstream)
    return merged


def join(
    observers: Sequence[Observer],
    *,
    race: bool = False,
    buffer: Sequence[Any] | None = None,
) -> Observer[tuple]:
    """Combine the latest value of every input into one tuple.

    By default nothing is emitted until each input has produced a value;
    after that every update from any input emits the full tuple, keeping
    the other slots at their last value. With race=True the first update
    already emits, slots that have not produced a value yet taking their
    entry from buffer (None where buffer is shorter).
    """
    size = len(observers)
    initial = list(buffer or ())[:size]
    initial.extend([None] * (size - len(initial)))
    unsubscribes: list[Disposer] = []

    def dispose() -> None:
        for unsubscribe in unsubscribes:
            unsubscribe()
        unsubscribes.clear()

    joined: Observer[tuple] = Observer(dispose)

    def connect_upstream(joined: Observer[tuple]) -> None:
        values = list(initial)
        visited = [False] * size

        def slot(index: int):
            async def on_value(value: Any) -> None:
                values[index] = value
                visited[index] = True
                if race or all(visited):
                    await joined.emit(tuple(values))

            return on_value

        for index, observer in enumerate(observers):
            unsubscribes.append(observer.connect(slot(index)))

    joined._on_connect(connect_upstream)
    return joined


def pipe(
    target: Observer[T],
    emitter: Callable[[Subject[T], Next], Disposer | None],
) -> Observer[U]:
    """Custom combinator: emitter reads target's values from a Subject.

    emitter(subject, next) subscribes to subject, pushes output with next
    and may return a cleanup. target is connected only while the result
    has listeners.

    Usage:
        def pairs(subject, next):
            previous = []

            def on_value(value):
                if previous:
                    next((previous[0], value))
                previous[:] = [value]

            return subject.subscribe(on_value)

        Source.pipe(source, pairs)
    """
    subject: Subject[T] = Subject()
    cleanup_ref: list[Disposer | None] = [None]
    unsubscribe_ref: list[Disposer | None] = [None]

    def dispose() -> None:
        if unsubscribe_ref[0] is not None:
            unsubscribe_ref[0]()
            unsubscribe_ref[0] = None
        if cleanup_ref[0] is not None:
            cleanup_ref[0]()
            cleanup_ref[0] = None

    observer: Observer[U] = Observer(dispose)

    def connect_upstream(observer: Observer[U]) -> None:
        cleanup_ref[0] = emitter(subject, _make_next(observer))
        unsubscribe_ref[0] = target.connect(subject.next)

    observer._on_connect(connect_upstream)
    return observer


def from_interval(delay: float) -> Unicast[int]:
    """Emit 0, 1, 2, ... every delay seconds."""

    def produce(next_value: Next) -> Disposer:
        counter = itertools.count()
        timer_ref: list[asyncio.TimerHandle | None] = [None]

        def tick() -> None:
            timer_ref[0] = call_later(delay, tick)
            next_value(next(counter))

        timer_ref[0] = call_later(delay, tick)
        return lambda: timer_ref[0].cancel()

    return create_cold(produce)


def from_awaitable(
    factory: Callable[[], Awaitable[T]],
    fallback: Callable[[Exception], Any] | None = None,
) -> Unicast[T]:
    """Await factory() on subscription and emit its result once.

    A failure goes to fallback when given; otherwise it is reported through
    the background error handler.
    """

    def produce(next_value: Next) -> Disposer:
        async def run() -> None:
            try:
                value = await factory()
            except Exception as error:
                if fallback is None:
                    raise
                logger.debug("from_awaitable factory failed, using fallback", exc_info=True)
                fallback(error)
                return
            next_value(value)

        return spawn(run()).cancel

    return create_cold(produce)


def from_delay(delay: float) -> Unicast[None]:
    """Emit None once, delay seconds after subscription."""

    def produce(next_value: Next) -> Disposer:
        return call_later(delay, next_value, None).cancel

    return create_cold(produce)


def from_array(data: Sequence[T]) -> Unicast[tuple]:
    """Emit data in chunks of up to 20 items, on subscription."""

    def produce(next_value: Next) -> None:
        next_value(data)

    return unicast(lambda: _lazy(produce).split())


def from_value(data: T | Callable[[], T]) -> Unicast[T]:
    """Emit data once on subscription; a callable is called for the value."""

    def produce(next_value: Next) -> None:
        next_value(data() if callable(data) else data)

    return create_cold(produce)


def from_subject(subject: Subject[T]) -> Observer[T]:
    return subject.to_observer()


def from_behavior_subject(subject: BehaviorSubject[T]) -> Unicast[T]:
    """Emit the subject's current value (unless None), then follow it."""

    def produce(next_value: Next) -> Disposer:
        if subject.data is not None:
            next_value(subject.data)
        return subject.subscribe(next_value)

    return create_cold(produce)


class Source:
    """Namespace of the factories above."""

    create_hot = staticmethod(create_hot)
    create_cold = staticmethod(create_cold)
    create = staticmethod(create)
    unicast = staticmethod(unicast)
    multicast = staticmethod(multicast)
    merge = staticmethod(merge)
    join = staticmethod(join)
    pipe = staticmethod(pipe)
    from_interval = staticmethod(from_interval)
    from_awaitable = staticmethod(from_awaitable)
    from_delay = staticmethod(from_delay)
    from_array = staticmethod(from_array)
    from_value = staticmethod(from_value)
    from_subject = staticmethod(from_subject)
    from_behavior_subject = staticmethod(from_behavior_subject)
