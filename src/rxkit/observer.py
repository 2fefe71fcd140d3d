"""Observer — a subscribable, disposable handle over a stream of values.

Every operator returns a new Observer wired lazily to its parent: nothing
happens until the first listener connects, at which point the derived
Observer connects upstream. When its last listener leaves (and it is not
shared) it disposes, which disconnects it from upstream in turn. Dispose
fires at most once and is never re-armed.

All state lives in _anchor; instances are thin handles holding an _id.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Any, AsyncIterator, Callable, Generic, Iterable, TypeVar

from rxkit import _anchor
from rxkit._scheduling import call_later, spawn, spawn_after
from rxkit.emitter import EventEmitter

logger = logging.getLogger("rxkit.observer")

T = TypeVar("T")
U = TypeVar("U")

Disposer = Callable[[], None]

OBSERVER_EVENT = "observer"

SPLIT_SIZE = 20

_DONE = object()


class Observer(Generic[T]):
    """A disposable reactive handle. See the module docstring for lifecycle."""

    __slots__ = ("_id", "__weakref__")

    def __init__(self, dispose: Disposer) -> None:
        self._id = _anchor.new_id()
        _anchor.emitters[self._id] = EventEmitter()
        _anchor.disposers[self._id] = dispose
        _anchor.connect_hooks[self._id] = []
        _anchor.shared[self._id] = False
        _anchor.disposed[self._id] = False
        weakref.finalize(self, _anchor.release, self._id).atexit = False

    @property
    def _emitter(self) -> EventEmitter:
        return _anchor.emitters[self._id]

    @property
    def is_shared(self) -> bool:
        return _anchor.shared[self._id]

    @property
    def has_listeners(self) -> bool:
        return bool(self._emitter.get_listeners(OBSERVER_EVENT))

    @property
    def is_disposed(self) -> bool:
        return _anchor.disposed[self._id]

    # --- Lifecycle ---

    def _on_connect(self, fn: Callable[[Observer], None]) -> None:
        """Run fn(self) when the first listener connects.

        Hooks sit in _anchor, so they take the handle as an argument instead
        of closing over it; a closure would keep an unconnected handle alive.
        """
        _anchor.connect_hooks[self._id].append(fn)

    def _fire_connect(self) -> None:
        hooks = _anchor.connect_hooks[self._id]
        if not hooks:
            return
        _anchor.connect_hooks[self._id] = []
        for hook in hooks:
            hook(self)

    def _try_dispose(self) -> None:
        """Dispose if nobody listens and the handle is not shared."""
        if self.has_listeners or self.is_shared:
            return
        self._dispose()

    def _dispose(self) -> None:
        if _anchor.disposed[self._id]:
            return
        _anchor.disposed[self._id] = True
        _anchor.connect_hooks[self._id] = []
        dispose = _anchor.disposers.pop(self._id)
        dispose()

    def _derive(
        self,
        wire: Callable[[Observer], Callable[[T], Any]],
        teardown: Disposer | None = None,
    ) -> Observer:
        """Build a child Observer fed by this one.

        wire(child) runs when the child gets its first listener and returns
        the callback to connect here. teardown runs after the child has
        disconnected on dispose.
        """
        unsubscribe_ref: list[Disposer | None] = [None]

        def dispose() -> None:
            if unsubscribe_ref[0] is not None:
                unsubscribe_ref[0]()
                unsubscribe_ref[0] = None
            if teardown is not None:
                teardown()

        child: Observer = Observer(dispose)

        def connect_upstream(child: Observer) -> None:
            unsubscribe_ref[0] = self.connect(wire(child))

        child._on_connect(connect_upstream)
        return child

    # --- Operators ---

    def map(self, fn: Callable[[T], U]) -> Observer[U]:
        """Transform every value through fn."""

        def wire(child: Observer[U]):
            async def on_value(value: T) -> None:
                await child.emit(fn(value))

            return on_value

        return self._derive(wire)

    def flat_map(self, fn: Callable[[T], Iterable[U]]) -> Observer[U]:
        """Emit each element of fn(value) separately."""

        def wire(child: Observer[U]):
            async def on_value(value: T) -> None:
                for item in fn(value):
                    await child.emit(item)

            return on_value

        return self._derive(wire)

    def filter(self, fn: Callable[[T], bool]) -> Observer[T]:
        """Only pass values where fn returns True."""

        def wire(child: Observer[T]):
            async def on_value(value: T) -> None:
                if fn(value):
                    await child.emit(value)

            return on_value

        return self._derive(wire)

    def reduce(self, fn: Callable[[U, T], U], begin: U) -> Observer[U]:
        """Emit the running accumulator after every value."""

        def wire(child: Observer[U]):
            acc = [begin]

            async def on_value(value: T) -> None:
                acc[0] = fn(acc[0], value)
                await child.emit(acc[0])

            return on_value

        return self._derive(wire)

    def tap(self, fn: Callable[[T], Any]) -> Observer[T]:
        """Call fn for its side effect, then pass the value on unchanged."""

        def wire(child: Observer[T]):
            async def on_value(value: T) -> None:
                fn(value)
                await child.emit(value)

            return on_value

        return self._derive(wire)

    def map_async(
        self,
        fn: Callable[[T], Any],
        fallback: Callable[[Exception], Any] | None = None,
    ) -> Observer[U]:
        """Transform every value through an async fn.

        If fn raises and fallback is given, fallback receives the exception
        and nothing is emitted for that value. Without a fallback the
        exception reaches whoever awaits the emission.
        """

        def wire(child: Observer[U]):
            async def on_value(value: T) -> None:
                try:
                    result = await fn(value)
                except Exception as error:
                    if fallback is None:
                        raise
                    logger.debug("map_async mapper failed, using fallback", exc_info=True)
                    fallback(error)
                    return
                await child.emit(result)

            return on_value

        return self._derive(wire)

    def operator(self, fn: Callable[[Observer[T]], Observer[U]]) -> Observer[U]:
        """Apply a reusable transform such as Operator.take(3)."""
        return fn(self)

    def merge(self, other: Observer[U]) -> Observer[T | U]:
        """Forward values from both this Observer and other, as they arrive."""
        unsubscribes: list[Disposer] = []

        def dispose() -> None:
            for unsubscribe in unsubscribes:
                unsubscribe()
            unsubscribes.clear()

        merged: Observer = Observer(dispose)

        def connect_upstream(merged: Observer) -> None:
            unsubscribes.append(self.connect(merged.emit))
            unsubscribes.append(other.connect(merged.emit))

        merged._on_connect(connect_upstream)
        return merged

    def split(self) -> Observer[tuple]:
        """Re-emit every iterable value as consecutive tuples of up to 20 items."""

        def wire(child: Observer[tuple]):
            async def on_value(value: Iterable) -> None:
                items = list(value)
                for start in range(0, len(items), SPLIT_SIZE):
                    await child.emit(tuple(items[start:start + SPLIT_SIZE]))

            return on_value

        return self._derive(wire)

    def debounce(self, delay: float = 1.0) -> Observer[T]:
        """Forward only the last value of a burst, after a quiet period.

        Each new value cancels the pending timer, so only the last value in
        a burst is forwarded, delay seconds after it arrived.
        """
        timer_ref: list[asyncio.TimerHandle | None] = [None]

        def teardown() -> None:
            if timer_ref[0] is not None:
                timer_ref[0].cancel()
                timer_ref[0] = None

        def wire(child: Observer[T]):
            def fire(value: T) -> None:
                timer_ref[0] = None
                spawn(child.emit(value))

            def on_value(value: T) -> None:
                if timer_ref[0] is not None:
                    timer_ref[0].cancel()
                timer_ref[0] = call_later(delay, fire, value)

            return on_value

        return self._derive(wire, teardown)

    def delay(self, delay: float = 1.0) -> Observer[T]:
        """Forward every value delay seconds after it arrived, in order.

        Deliveries are chained: an async listener finishes with one value
        before it gets the next.
        """
        timers: set[asyncio.TimerHandle] = set()
        last: list[asyncio.Future | None] = [None]

        def teardown() -> None:
            for timer in timers:
                timer.cancel()
            timers.clear()

        def wire(child: Observer[T]):
            def fire(value: T, handle_ref: list) -> None:
                timers.discard(handle_ref[0])
                last[0] = spawn_after(last[0], child.emit(value))

            def on_value(value: T) -> None:
                handle_ref: list[asyncio.TimerHandle | None] = [None]
                handle_ref[0] = call_later(delay, fire, value, handle_ref)
                timers.add(handle_ref[0])

            return on_value

        return self._derive(wire, teardown)

    def repeat(self, interval: float = 1.0) -> Observer[T]:
        """Forward every value, then keep re-emitting the latest one.

        The latest value is re-emitted every interval seconds until the
        derived Observer is disposed; a new value restarts the cadence.
        """
        timer_ref: list[asyncio.TimerHandle | None] = [None]

        def teardown() -> None:
            if timer_ref[0] is not None:
                timer_ref[0].cancel()
                timer_ref[0] = None

        def wire(child: Observer[T]):
            def tick(value: T) -> None:
                timer_ref[0] = call_later(interval, tick, value)
                spawn(child.emit(value))

            async def on_value(value: T) -> None:
                teardown()
                timer_ref[0] = call_later(interval, tick, value)
                await child.emit(value)

            return on_value

        return self._derive(wire, teardown)

    # --- Consumption ---

    async def emit(self, value: T) -> None:
        """Deliver value to every listener, awaiting async ones in order."""
        await self._emitter.emit(OBSERVER_EVENT, value)

    def connect(self, callback: Callable[[T], Any]) -> Disposer:
        """Register a listener. Returns a function that removes it.

        The first connect wires this Observer to its upstream. Removing the
        last listener disposes it unless it is shared.
        """
        emitter = self._emitter
        emitter.subscribe(OBSERVER_EVENT, callback)
        self._fire_connect()
        connected = [True]

        def unsubscribe() -> None:
            if not connected[0]:
                return
            connected[0] = False
            emitter.unsubscribe(OBSERVER_EVENT, callback)
            self._try_dispose()

        return unsubscribe

    def once(self, callback: Callable[[T], Any]) -> Disposer:
        """Like connect(), but unsubscribes after the first delivered value."""

        def handler(value: T) -> Any:
            unsubscribe()
            return callback(value)

        unsubscribe = self.connect(handler)
        return unsubscribe

    def share(self) -> Observer[T]:
        """Mark as shared: losing all listeners no longer disposes it."""
        _anchor.shared[self._id] = True
        return self

    def unsubscribe(self) -> None:
        """Drop every listener and dispose, shared or not."""
        self._emitter.unsubscribe_all()
        self._dispose()

    def to_future(self) -> asyncio.Future:
        """Future resolved with the next emitted value.

        Cancelling the future removes its listener.
        """
        future = asyncio.get_running_loop().create_future()

        def resolve(value: T) -> None:
            if not future.done():
                future.set_result(value)

        unsubscribe = self.once(resolve)
        future.add_done_callback(lambda _: unsubscribe())
        return future

    def to_iterator_context(self) -> IteratorContext[T]:
        """Bridge pushes to ``async for``. See IteratorContext."""
        return IteratorContext(self)

    def __repr__(self) -> str:
        if self.is_disposed:
            state = "disposed"
        else:
            state = f"listeners={len(self._emitter.get_listeners(OBSERVER_EVENT))}"
        shared = ", shared" if self.is_shared else ""
        return f"Observer({state}{shared})"


class IteratorContext(Generic[T]):
    """Pull-style view of an Observer.

    Values are buffered from the moment the context is created. Each call
    to iterate() returns a fresh async generator over that buffer; done()
    ends every running iteration and releases the subscription.

    Usage:
        context = subject.to_iterator_context()

        async for value in context.iterate():
            if value == "stop":
                context.done()
    """

    __slots__ = ("_queue", "_done", "_unsubscribe")

    def __init__(self, observer: Observer[T]) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._done = False
        self._unsubscribe = observer.connect(self._queue.put_nowait)

    @property
    def is_done(self) -> bool:
        return self._done

    async def iterate(self) -> AsyncIterator[T]:
        while not self._done:
            value = await self._queue.get()
            if value is _DONE:
                # wake any other generator waiting on the same buffer
                self._queue.put_nowait(_DONE)
                return
            yield value

    def done(self) -> None:
        if self._done:
            return
        self._done = True
        self._unsubscribe()
        self._queue.put_nowait(_DONE)
