import asyncio
import json
import threading
from datetime import datetime

from aerodeliver.realtime import OrderChangeFeed, format_sse, stream_order_events


def test_publish_reaches_only_matching_order():
    feed = OrderChangeFeed()

    async def scenario():
        tracked = feed.subscribe("order-1")
        other = feed.subscribe("order-2")
        assert feed.publish("order-1", {"status": "in-transit"}) == 1
        message = await asyncio.wait_for(tracked.get(), timeout=1)
        assert other.queue.empty()
        return message

    message = asyncio.run(scenario())
    assert message["event"] == "UPDATE"
    assert message["id"] == "order-1"
    assert message["new"] == {"status": "in-transit"}


def test_publish_from_worker_thread():
    feed = OrderChangeFeed()

    async def scenario():
        subscription = feed.subscribe("order-1")
        worker = threading.Thread(target=feed.publish, args=("order-1", {"status": "delivered"}))
        worker.start()
        message = await asyncio.wait_for(subscription.get(), timeout=1)
        worker.join()
        return message

    assert asyncio.run(scenario())["new"]["status"] == "delivered"


def test_unsubscribe_stops_delivery():
    feed = OrderChangeFeed()

    async def scenario():
        subscription = feed.subscribe("order-1")
        feed.unsubscribe(subscription)
        return feed.publish("order-1", {"status": "delivered"})

    assert asyncio.run(scenario()) == 0
    assert feed.subscriber_count() == 0


def test_stream_tears_down_subscription_on_disconnect():
    feed = OrderChangeFeed()
    disconnected = False

    async def is_disconnected():
        return disconnected

    async def scenario():
        nonlocal disconnected
        stream = stream_order_events(feed, "order-1", is_disconnected)
        pending = asyncio.ensure_future(stream.__anext__())
        await asyncio.sleep(0)
        assert feed.subscriber_count("order-1") == 1
        feed.publish("order-1", {"status": "in-transit"})
        chunk = await asyncio.wait_for(pending, timeout=1)
        disconnected = True
        await stream.aclose()
        return chunk

    chunk = asyncio.run(scenario())
    assert chunk.startswith("event: UPDATE\ndata: ")
    assert json.loads(chunk.split("data: ", 1)[1])["new"]["status"] == "in-transit"
    assert feed.subscriber_count() == 0


def test_format_sse_serialises_dates():
    chunk = format_sse({"event": "UPDATE", "new": {"accepted_at": datetime(2026, 1, 1, 9, 30)}})
    assert chunk.startswith("event: UPDATE\n")
    assert "2026-01-01 09:30:00" in chunk
    assert chunk.endswith("\n\n")
