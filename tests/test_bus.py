import asyncio

import pytest

from deskhost.bus import EventBus


def test_publish_reaches_matching_subscribers_only():
    bus = EventBus()
    seen = []
    bus.subscribe("topic", lambda event: seen.append(("all", event.payload)))
    bus.subscribe("topic", lambda event: seen.append(("even", event.payload)), lambda payload: payload % 2 == 0)

    assert bus.publish("topic", 1) == 1
    assert bus.publish("topic", 2) == 2
    assert bus.publish("other", 3) == 0
    assert seen == [("all", 1), ("all", 2), ("even", 2)]


def test_unsubscribe_and_failing_handlers():
    bus = EventBus()
    seen = []

    def broken(event):
        raise RuntimeError("handler bug")

    bus.subscribe("topic", broken)
    unsubscribe = bus.subscribe("topic", lambda event: seen.append(event.payload))

    bus.publish("topic", "x")
    unsubscribe()
    bus.publish("topic", "y")

    assert seen == ["x"]
    assert bus.subscriber_count("topic") == 1


@pytest.mark.asyncio
async def test_async_handlers_are_scheduled():
    bus = EventBus()
    done = asyncio.Event()

    async def handler(event):
        done.set()

    bus.subscribe("topic", handler)
    bus.publish("topic", None)

    await asyncio.wait_for(done.wait(), timeout=1)


@pytest.mark.asyncio
async def test_stream_yields_filtered_payloads():
    bus = EventBus()
    stream = bus.stream("topic", lambda payload: payload != "skip")

    async def _produce():
        await asyncio.sleep(0)
        for payload in ("a", "skip", "b"):
            bus.publish("topic", payload)

    producer = asyncio.create_task(_produce())
    received = [await stream.__anext__(), await stream.__anext__()]
    await producer
    await stream.aclose()

    assert received == ["a", "b"]
    assert bus.subscriber_count("topic") == 0
