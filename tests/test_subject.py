"""Tests for Subject and BehaviorSubject."""

import asyncio

import pytest

from rxkit import BehaviorSubject, Subject, settle


class TestSubject:
    @pytest.mark.asyncio
    async def test_next_reaches_subscribers_in_order(self):
        subject = Subject()
        log = []
        subject.subscribe(lambda v: log.append(("a", v)))
        subject.subscribe(lambda v: log.append(("b", v)))
        await subject.next(1)
        assert log == [("a", 1), ("b", 1)]

    @pytest.mark.asyncio
    async def test_next_waits_for_async_subscribers(self):
        subject = Subject()
        log = []

        async def slow(v):
            await asyncio.sleep(0.01)
            log.append(v)

        subject.subscribe(slow)
        await subject.next("done")
        assert log == ["done"]

    @pytest.mark.asyncio
    async def test_unsubscribe_is_idempotent(self):
        subject = Subject()
        log = []
        callback = log.append
        unsub_first = subject.subscribe(callback)
        subject.subscribe(callback)
        unsub_first()
        unsub_first()  # must not remove the second registration
        await subject.next(1)
        assert log == [1]

    @pytest.mark.asyncio
    async def test_once(self):
        subject = Subject()
        log = []
        subject.once(log.append)
        await subject.next(1)
        await subject.next(2)
        assert log == [1]

    @pytest.mark.asyncio
    async def test_unsubscribe_all(self):
        subject = Subject()
        log = []
        subject.subscribe(log.append)
        subject.subscribe(log.append)
        subject.unsubscribe_all()
        await subject.next(1)
        assert log == []
        assert not subject.has_listeners

    @pytest.mark.asyncio
    async def test_to_observer_follows_listener_count(self):
        subject = Subject()
        observer = subject.to_observer()
        assert not subject.has_listeners
        received = []
        unsub = observer.connect(received.append)
        assert subject.has_listeners
        await subject.next("x")
        unsub()
        assert received == ["x"]
        assert not subject.has_listeners

    def test_repr(self):
        subject = Subject()
        subject.subscribe(print)
        assert repr(subject) == "Subject(subscribers=1)"


class TestBehaviorSubject:
    def test_seeded_value(self):
        assert BehaviorSubject(5).data == 5
        assert BehaviorSubject().data is None

    @pytest.mark.asyncio
    async def test_next_updates_cell_before_notifying(self):
        subject = BehaviorSubject(0)
        seen = []
        subject.subscribe(lambda v: seen.append((v, subject.data)))
        await subject.next(1)
        assert seen == [(1, 1)]
        assert subject.data == 1

    @pytest.mark.asyncio
    async def test_cell_is_updated_synchronously(self):
        subject = BehaviorSubject(0)
        pending = subject.next(7)
        assert subject.data == 7
        await pending

    @pytest.mark.asyncio
    async def test_to_observer_replays_current_value(self):
        subject = BehaviorSubject("initial")
        received = []
        subject.to_observer().connect(received.append)
        await settle()
        assert received == ["initial"]
        await subject.next("next")
        assert received == ["initial", "next"]

    @pytest.mark.asyncio
    async def test_to_observer_skips_replay_of_empty_cell(self):
        subject = BehaviorSubject()
        received = []
        subject.to_observer().connect(received.append)
        await settle()
        assert received == []

    def test_repr(self):
        assert repr(BehaviorSubject(3)) == "BehaviorSubject(3)"
