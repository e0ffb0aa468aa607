"""
Test Stream Aggregator
======================

Ordering, interruption handling and single use.
"""

import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import asyncio

import pytest

from core.errors import StreamInterrupted
from stepPipeline.stream_aggregator import StreamAggregator, aggregate, is_fragment_sequence


async def delayed(fragments, delays):
    for fragment, delay in zip(fragments, delays):
        await asyncio.sleep(delay)
        yield fragment


async def failing_after(fragments):
    for fragment in fragments:
        yield fragment
    raise ConnectionError("connection reset by peer")


def test_concatenates_in_arrival_order():
    text = asyncio.run(aggregate(delayed(["Hel", "lo, ", "world"], [0.03, 0.0, 0.01])))
    assert text == "Hello, world"


def test_accepts_sync_iterators():
    assert asyncio.run(aggregate(iter(["a", "b", "c"]))) == "abc"


def test_mid_stream_failure_discards_partial_text():
    aggregator = StreamAggregator()
    with pytest.raises(StreamInterrupted) as exc:
        asyncio.run(aggregator.aggregate(failing_after(["partial"])))
    assert exc.value.fragments_received == 1
    assert isinstance(exc.value.__cause__, ConnectionError)
    assert aggregator.fragments_received == 0


def test_empty_stream_is_interrupted():
    with pytest.raises(StreamInterrupted):
        asyncio.run(aggregate(delayed([], [])))


def test_non_text_fragment_is_interrupted():
    with pytest.raises(StreamInterrupted) as exc:
        asyncio.run(aggregate(iter(["ok", {"__usage__": {}}])))
    assert exc.value.fragments_received == 1


def test_producer_is_closed_when_aborted():
    state = {"closed": False}

    async def producer():
        try:
            yield "fine"
            yield 42
            yield "never"
        finally:
            state["closed"] = True

    with pytest.raises(StreamInterrupted):
        asyncio.run(aggregate(producer()))
    assert state["closed"]


def test_observers_see_every_fragment_in_order():
    seen = []

    async def async_observer(fragment):
        seen.append(("async", fragment))

    asyncio.run(aggregate(iter(["x", "y"]), on_fragment=lambda f: seen.append(("sync", f))))
    asyncio.run(aggregate(delayed(["z"], [0]), on_fragment=async_observer))
    assert seen == [("sync", "x"), ("sync", "y"), ("async", "z")]


def test_aggregator_is_single_use():
    aggregator = StreamAggregator()
    asyncio.run(aggregator.aggregate(iter(["once"])))
    with pytest.raises(RuntimeError):
        asyncio.run(aggregator.aggregate(iter(["twice"])))


def test_fragment_sequence_detection():
    assert is_fragment_sequence(delayed([], []))
    assert is_fragment_sequence(iter(["a"]))
    assert is_fragment_sequence(x for x in "ab")
    assert not is_fragment_sequence({"activities": "text"})
    assert not is_fragment_sequence("text")
    assert not is_fragment_sequence(["a", "b"])
