"""Per-order change feed.

Order mutations happen in sync endpoints running on the threadpool, while
subscribers are SSE streams running on the event loop. Events are handed over
with ``call_soon_threadsafe`` so publishers never touch a subscriber queue
directly.
"""
import asyncio
import json
import logging
import threading
from collections import defaultdict
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

UPDATE = "UPDATE"
HEARTBEAT_SECONDS = 15

TRACKED_FIELDS = ("status", "eta", "pickup", "delivery", "owner_id", "owner_name", "owner_email")


def order_payload(order) -> dict:
    return {field: getattr(order, field) for field in TRACKED_FIELDS}


class Subscription:
    def __init__(self, order_id: str, loop: asyncio.AbstractEventLoop):
        self.order_id = order_id
        self.loop = loop
        self.queue: asyncio.Queue = asyncio.Queue()

    async def get(self) -> dict:
        return await self.queue.get()


class OrderChangeFeed:
    def __init__(self):
        self._subscribers: Dict[str, List[Subscription]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, order_id: str) -> Subscription:
        subscription = Subscription(order_id, asyncio.get_running_loop())
        with self._lock:
            self._subscribers[order_id].append(subscription)
        logger.debug("Subscribed to order-tracking-%s", order_id)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subscribers = self._subscribers.get(subscription.order_id, [])
            if subscription in subscribers:
                subscribers.remove(subscription)
            if not subscribers:
                self._subscribers.pop(subscription.order_id, None)
        logger.debug("Unsubscribed from order-tracking-%s", subscription.order_id)

    def subscriber_count(self, order_id: Optional[str] = None) -> int:
        with self._lock:
            if order_id is not None:
                return len(self._subscribers.get(order_id, []))
            return sum(len(subs) for subs in self._subscribers.values())

    def publish(self, order_id: str, new: dict, event: str = UPDATE) -> int:
        message = {"event": event, "table": "orders", "id": order_id, "new": new}
        with self._lock:
            subscribers = list(self._subscribers.get(order_id, []))
        delivered = 0
        for subscription in subscribers:
            try:
                subscription.loop.call_soon_threadsafe(subscription.queue.put_nowait, message)
                delivered += 1
            except RuntimeError:
                # loop already closed, the stream is gone
                logger.warning("Dropping stale subscriber for order %s", order_id)
                self.unsubscribe(subscription)
        return delivered


def format_sse(message: dict) -> str:
    return f"event: {message['event']}\ndata: {json.dumps(message, default=str)}\n\n"


async def stream_order_events(feed: OrderChangeFeed, order_id: str, is_disconnected):
    subscription = feed.subscribe(order_id)
    try:
        while True:
            if await is_disconnected():
                break
            try:
                message = await asyncio.wait_for(subscription.get(), timeout=HEARTBEAT_SECONDS)
            except asyncio.TimeoutError:
                yield ": heartbeat\n\n"
                continue
            yield format_sse(message)
    finally:
        feed.unsubscribe(subscription)


change_feed = OrderChangeFeed()
