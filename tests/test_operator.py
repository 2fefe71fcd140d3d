"""Tests for Operator transforms."""

import asyncio

import pytest

from rxkit import Counted, Operator, Subject


async def _run(transform, values):
    """Push values through subject.operator(transform) and collect the output."""
    subject = Subject()
    received = []
    subject.operator(transform).connect(received.append)
    for value in values:
        await subject.next(value)
    return received


class TestTakeSkip:
    @pytest.mark.asyncio
    async def test_take(self):
        assert await _run(Operator.take(2), [1, 2, 3, 4]) == [1, 2]

    @pytest.mark.asyncio
    async def test_take_zero(self):
        assert await _run(Operator.take(0), [1, 2]) == []

    @pytest.mark.asyncio
    async def test_skip(self):
        assert await _run(Operator.skip(2), [1, 2, 3, 4]) == [3, 4]


class TestPair:
    @pytest.mark.asyncio
    async def test_adjacent_pairs_by_default(self):
        assert await _run(Operator.pair(), [1, 2, 3]) == [(1, 2), (2, 3)]

    @pytest.mark.asyncio
    async def test_wider_spacing(self):
        assert await _run(Operator.pair(3), [1, 2, 3, 4]) == [(1, 3), (2, 4)]


class TestGroup:
    @pytest.mark.asyncio
    async def test_trailing_partial_group_is_held(self):
        assert await _run(Operator.group(3), [1, 2, 3, 4, 5, 6, 7]) == [
            [1, 2, 3],
            [4, 5, 6],
        ]

    @pytest.mark.asyncio
    async def test_partial_group_completes_later(self):
        subject = Subject()
        received = []
        subject.operator(Operator.group(2)).connect(received.append)
        await subject.next("a")
        assert received == []
        await subject.next("b")
        assert received == [["a", "b"]]


class TestStrideTricks:
    @pytest.mark.asyncio
    async def test_sliding_windows(self):
        assert await _run(Operator.stride_tricks(2), [[1, 2, 3, 4]]) == [
            [[1, 2], [2, 3], [3, 4]],
        ]

    @pytest.mark.asyncio
    async def test_step(self):
        assert await _run(Operator.stride_tricks(2, 2), [[1, 2, 3, 4, 5]]) == [
            [[1, 2], [3, 4]],
        ]

    @pytest.mark.asyncio
    async def test_input_shorter_than_window(self):
        assert await _run(Operator.stride_tricks(3), [[1, 2]]) == [[]]


class TestDistinct:
    @pytest.mark.asyncio
    async def test_drops_consecutive_duplicates(self):
        assert await _run(Operator.distinct(), [1, 1, 2, 2, 2, 3, 1]) == [1, 2, 3, 1]

    @pytest.mark.asyncio
    async def test_key_function(self):
        values = [{"id": 1, "n": "a"}, {"id": 1, "n": "b"}, {"id": 2, "n": "c"}]
        result = await _run(Operator.distinct(lambda v: v["id"]), values)
        assert [v["n"] for v in result] == ["a", "c"]

    @pytest.mark.asyncio
    async def test_none_is_a_real_value(self):
        assert await _run(Operator.distinct(), [None, None, 1]) == [None, 1]


class TestCount:
    @pytest.mark.asyncio
    async def test_wraps_with_running_count(self):
        assert await _run(Operator.count(), ["a", "b"]) == [
            Counted("a", 1),
            Counted("b", 2),
        ]


class TestLiveness:
    @pytest.mark.asyncio
    async def test_fires_after_silence(self):
        fired = []
        subject = Subject()
        subject.operator(Operator.liveness(lambda: fired.append(True), 0.03)).connect(
            lambda v: None
        )
        await asyncio.sleep(0.06)
        assert fired == [True]

    @pytest.mark.asyncio
    async def test_values_reset_the_timer(self):
        fired = []
        subject = Subject()
        received = []
        subject.operator(Operator.liveness(lambda: fired.append(True), 0.05)).connect(
            received.append
        )
        for v in range(4):
            await asyncio.sleep(0.02)
            await subject.next(v)
        assert fired == []
        assert received == [0, 1, 2, 3]

    @pytest.mark.asyncio
    async def test_dispose_cancels_timer(self):
        fired = []
        subject = Subject()
        unsub = subject.operator(
            Operator.liveness(lambda: fired.append(True), 0.02)
        ).connect(lambda v: None)
        unsub()
        await asyncio.sleep(0.05)
        assert fired == []
