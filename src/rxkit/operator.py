"""Operator — reusable stream transforms for Observer.operator().

Each factory returns a function from an Observer to a new derived
Observer, so transforms compose with the built-in operators:

    subject.to_observer().operator(Operator.distinct()).operator(Operator.take(3))

State (counters, buffers, timers) belongs to the derived Observer built by
one application of the transform.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Generic, Sequence, TypeVar

from rxkit._scheduling import call_later
from rxkit.observer import Observer

T = TypeVar("T")

Transform = Callable[[Observer], Observer]

_UNSET = object()


@dataclass(frozen=True, slots=True)
class Counted(Generic[T]):
    """A value paired with its 1-based position in the stream."""

    value: T
    count: int


def take(count: int) -> Transform:
    """Forward the first count values, ignore the rest."""

    def apply(target: Observer) -> Observer:
        seen = [0]

        def wire(child: Observer):
            async def on_value(value) -> None:
                if seen[0] >= count:
                    return
                seen[0] += 1
                await child.emit(value)

            return on_value

        return target._derive(wire)

    return apply


def skip(count: int) -> Transform:
    """Drop the first count values, forward the rest."""

    def apply(target: Observer) -> Observer:
        seen = [0]

        def wire(child: Observer):
            async def on_value(value) -> None:
                if seen[0] < count:
                    seen[0] += 1
                    return
                await child.emit(value)

            return on_value

        return target._derive(wire)

    return apply


def pair(by: int = 2) -> Transform:
    """Emit (older, newer) tuples of values by - 1 positions apart.

    The default by=2 yields adjacent pairs: 1, 2, 3 -> (1, 2), (2, 3).
    """

    def apply(target: Observer) -> Observer:
        window: deque = deque(maxlen=by)

        def wire(child: Observer):
            async def on_value(value) -> None:
                window.append(value)
                if len(window) == by:
                    await child.emit((window[0], window[-1]))

            return on_value

        return target._derive(wire)

    return apply


def group(by: int) -> Transform:
    """Batch values into lists of by. A trailing partial batch is held."""

    def apply(target: Observer) -> Observer:
        batch: list = []

        def wire(child: Observer):
            async def on_value(value) -> None:
                batch.append(value)
                if len(batch) < by:
                    return
                ready = batch[:]
                batch.clear()
                await child.emit(ready)

            return on_value

        return target._derive(wire)

    return apply


def stride_tricks(size: int, step: int = 1) -> Transform:
    """Turn every sequence value into its sliding windows.

    Windows are value[i:i + size] for i = 0, step, 2 * step, ... while a
    full window fits. Each input produces one emission: the list of windows.
    """

    def apply(target: Observer) -> Observer:
        def wire(child: Observer):
            async def on_value(value: Sequence) -> None:
                items = list(value)
                windows = [
                    items[start:start + size]
                    for start in range(0, len(items) - size + 1, step)
                ]
                await child.emit(windows)

            return on_value

        return target._derive(wire)

    return apply


def distinct(key: Callable[[Any], Any] | None = None) -> Transform:
    """Drop a value whose key equals the key of the value just before it."""
    get_key = key if key is not None else (lambda value: value)

    def apply(target: Observer) -> Observer:
        last = [_UNSET]

        def wire(child: Observer):
            async def on_value(value) -> None:
                current = get_key(value)
                if last[0] is not _UNSET and last[0] == current:
                    return
                last[0] = current
                await child.emit(value)

            return on_value

        return target._derive(wire)

    return apply


def liveness(fallback: Callable[[], Any], wait_for: float = 30.0) -> Transform:
    """Dead-man's switch: call fallback after wait_for seconds of silence.

    The timer starts when the derived Observer connects and restarts on
    every value. It fires once per silent period; values pass through.
    """

    def apply(target: Observer) -> Observer:
        timer_ref: list[asyncio.TimerHandle | None] = [None]

        def expire() -> None:
            timer_ref[0] = None
            fallback()

        def rearm() -> None:
            disarm()
            timer_ref[0] = call_later(wait_for, expire)

        def disarm() -> None:
            if timer_ref[0] is not None:
                timer_ref[0].cancel()
                timer_ref[0] = None

        def wire(child: Observer):
            rearm()

            async def on_value(value) -> None:
                rearm()
                await child.emit(value)

            return on_value

        return target._derive(wire, disarm)

    return apply


def count() -> Transform:
    """Wrap every value as Counted(value, n), n counting from 1."""

    def apply(target: Observer) -> Observer:
        seen = [0]

        def wire(child: Observer):
            async def on_value(value) -> None:
                seen[0] += 1
                await child.emit(Counted(value, seen[0]))

            return on_value

        return target._derive(wire)

    return apply


class Operator:
    """Namespace of the transforms above, for Observer.operator()."""

    take = staticmethod(take)
    skip = staticmethod(skip)
    pair = staticmethod(pair)
    group = staticmethod(group)
    stride_tricks = staticmethod(stride_tricks)
    distinct = staticmethod(distinct)
    liveness = staticmethod(liveness)
    count = staticmethod(count)
