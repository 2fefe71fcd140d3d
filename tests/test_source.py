"""Tests for Source — factories, combinators and conversions."""

import asyncio

import pytest

from rxkit import BehaviorSubject, Source, Subject, set_error_handler, settle


class TestHot:
    def test_producer_runs_immediately(self):
        log = []

        def produce(next_value):
            log.append("start")
            return lambda: log.append("cleanup")

        obs = Source.create_hot(produce)
        assert log == ["start"]
        unsub = obs.connect(lambda v: None)
        unsub()
        assert log == ["start", "cleanup"]

    @pytest.mark.asyncio
    async def test_next_delivers_to_listeners(self):
        nexts = []
        obs = Source.create_hot(nexts.append)
        received = []
        obs.connect(received.append)
        await nexts[0](1)
        await nexts[0](2)
        assert received == [1, 2]


class TestCold:
    @pytest.mark.asyncio
    async def test_producer_runs_per_subscriber(self):
        starts = []

        def produce(next_value):
            starts.append(next_value)

        cold = Source.create_cold(produce)
        assert starts == []

        a, b = [], []
        cold.connect(a.append)
        cold.connect(b.append)
        assert len(starts) == 2

        await starts[0]("x")
        assert a == ["x"]
        assert b == []

    @pytest.mark.asyncio
    async def test_create_is_cold(self):
        assert Source.create is Source.create_cold

    @pytest.mark.asyncio
    async def test_cleanup_on_unsubscribe(self):
        log = []
        cold = Source.create_cold(lambda next_value: lambda: log.append("cleanup"))
        unsub = cold.connect(lambda v: None)
        assert log == []
        unsub()
        assert log == ["cleanup"]

    @pytest.mark.asyncio
    async def test_synchronous_pushes_arrive_in_order(self):
        def produce(next_value):
            for v in range(5):
                next_value(v)

        received = []

        async def slow_listener(v):
            await asyncio.sleep(0.001 * (5 - v))
            received.append(v)

        Source.create(produce).connect(slow_listener)
        await settle()
        assert received == [0, 1, 2, 3, 4]


class TestUnicastMulticast:
    def test_unicast_uses_a_fresh_observer_per_access(self):
        made = []

        def factory():
            obs = Source.create_hot(lambda next_value: None)
            made.append(obs)
            return obs

        uni = Source.unicast(factory)
        assert uni.is_unicasted
        uni.connect(lambda v: None)
        uni.connect(lambda v: None)
        assert len(made) == 2

    @pytest.mark.asyncio
    async def test_multicast_shares_one_producer(self):
        starts = []

        def factory():
            def produce(next_value):
                starts.append(next_value)
                return lambda: starts.append("stop")

            return Source.create_hot(produce)

        shared = Source.multicast(factory)
        assert shared.is_multicasted
        assert starts == []

        a, b = [], []
        unsub_a = shared.connect(a.append)
        unsub_b = shared.connect(b.append)
        assert len(starts) == 1

        await starts[0]("x")
        assert a == ["x"]
        assert b == ["x"]

        first_ref = shared.get_ref()
        unsub_a()
        assert "stop" not in starts
        unsub_b()
        assert starts[-1] == "stop"

        shared.connect(lambda v: None)
        assert len([s for s in starts if s != "stop"]) == 2
        assert shared.get_ref() is not first_ref


class TestMerge:
    @pytest.mark.asyncio
    async def test_forwards_all_inputs(self):
        a, b, c = Subject(), Subject(), Subject()
        received = []
        unsub = Source.merge(
            [a.to_observer(), b.to_observer(), c.to_observer()]
        ).connect(received.append)
        await a.next(1)
        await c.next("c")
        await b.next(2.5)
        assert received == [1, "c", 2.5]

        unsub()
        assert not (a.has_listeners or b.has_listeners or c.has_listeners)


class TestJoin:
    @pytest.mark.asyncio
    async def test_waits_for_every_input(self):
        a, b = Subject(), Subject()
        received = []
        Source.join([a.to_observer(), b.to_observer()]).connect(received.append)
        await a.next(1)
        assert received == []
        await b.next(2)
        assert received == [(1, 2)]
        await a.next(3)
        assert received == [(1, 2), (3, 2)]

    @pytest.mark.asyncio
    async def test_race_uses_buffer_defaults(self):
        a, b = Subject(), Subject()
        received = []
        Source.join(
            [a.to_observer(), b.to_observer()], race=True, buffer=[0, "b0"]
        ).connect(received.append)
        await a.next(1)
        assert received == [(1, "b0")]
        await b.next("b1")
        assert received == [(1, "b0"), (1, "b1")]

    @pytest.mark.asyncio
    async def test_race_without_buffer_fills_none(self):
        a, b = Subject(), Subject()
        received = []
        Source.join([a.to_observer(), b.to_observer()], race=True).connect(received.append)
        await b.next("b")
        assert received == [(None, "b")]


class TestPipe:
    @pytest.mark.asyncio
    async def test_custom_combinator(self):
        source = Subject()

        def pairs(subject, next_value):
            previous = []

            def on_value(value):
                if previous:
                    next_value((previous[0], value))
                previous[:] = [value]

            return subject.subscribe(on_value)

        received = []
        unsub = Source.pipe(source.to_observer(), pairs).connect(received.append)
        for v in (1, 2, 3):
            await source.next(v)
        await settle()
        assert received == [(1, 2), (2, 3)]

        unsub()
        assert not source.has_listeners


class TestConversions:
    @pytest.mark.asyncio
    async def test_from_value(self):
        received = []
        Source.from_value(42).connect(received.append)
        await settle()
        assert received == [42]

    @pytest.mark.asyncio
    async def test_from_value_calls_factory(self):
        received = []
        Source.from_value(lambda: "made").connect(received.append)
        await settle()
        assert received == ["made"]

    @pytest.mark.asyncio
    async def test_from_array(self):
        received = []
        Source.from_array(list(range(25))).connect(received.append)
        await settle()
        assert received == [tuple(range(20)), tuple(range(20, 25))]

    @pytest.mark.asyncio
    async def test_from_array_replays_for_each_subscriber(self):
        source = Source.from_array([1, 2, 3])
        assert source.is_unicasted
        first, second = [], []
        source.connect(first.append)()
        await settle()
        source.connect(second.append)
        await settle()
        assert first == [(1, 2, 3)]
        assert second == [(1, 2, 3)]

    @pytest.mark.asyncio
    async def test_from_delay(self):
        received = []
        Source.from_delay(0.01).connect(received.append)
        assert received == []
        await asyncio.sleep(0.03)
        await settle()
        assert received == [None]

    @pytest.mark.asyncio
    async def test_from_interval(self):
        received = []
        unsub = Source.from_interval(0.01).connect(received.append)
        await asyncio.sleep(0.055)
        unsub()
        await settle()
        assert received[:3] == [0, 1, 2]
        count = len(received)
        await asyncio.sleep(0.03)
        await settle()
        assert len(received) == count

    @pytest.mark.asyncio
    async def test_from_awaitable(self):
        async def fetch():
            return "payload"

        received = []
        Source.from_awaitable(fetch).connect(received.append)
        await settle()
        assert received == ["payload"]

    @pytest.mark.asyncio
    async def test_from_awaitable_fallback(self):
        async def fetch():
            raise RuntimeError("down")

        received, errors = [], []
        Source.from_awaitable(fetch, errors.append).connect(received.append)
        await settle()
        assert received == []
        assert [str(e) for e in errors] == ["down"]

    @pytest.mark.asyncio
    async def test_from_awaitable_error_reaches_error_handler(self):
        async def fetch():
            raise RuntimeError("down")

        reported = []
        set_error_handler(reported.append)
        try:
            Source.from_awaitable(fetch).connect(lambda v: None)
            await settle()
        finally:
            set_error_handler(None)
        assert [str(e) for e in reported] == ["down"]

    @pytest.mark.asyncio
    async def test_from_subject(self):
        subject = Subject()
        received = []
        Source.from_subject(subject).connect(received.append)
        await subject.next(1)
        assert received == [1]

    @pytest.mark.asyncio
    async def test_from_behavior_subject_starts_with_current(self):
        subject = BehaviorSubject("now")
        received = []
        Source.from_behavior_subject(subject).connect(received.append)
        await settle()
        await subject.next("later")
        assert received == ["now", "later"]
