# Overview: In-process fan-out of server-side events to connected clients.

"""
Event Relay

Pushes {type, data} messages to every connected client. Each subscriber
owns a bounded queue; publish() never blocks the caller.

DELIVERY: at-most-once, best-effort. A subscriber whose queue is full
misses the message. Nothing is persisted for disconnected clients, and
there is no subscription filtering.
"""

from __future__ import annotations

import json
import logging
import queue
import threading
from typing import Any

logger = logging.getLogger(__name__)

EVENT_NOTIFICATION = "notification"
EVENT_LOW_STOCK_ALERT = "low_stock_alert"
EVENT_ORDER_UPDATE = "order_update"


class EventRelay:
    def __init__(self, maxsize: int = 100):
        self.maxsize = maxsize
        self._subscribers: set[queue.Queue] = set()
        self._lock = threading.Lock()

    def init_app(self, app) -> None:
        self.maxsize = app.config.get("EVENT_QUEUE_SIZE", self.maxsize)
        app.extensions["event_relay"] = self

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self) -> queue.Queue:
        q: queue.Queue = queue.Queue(maxsize=self.maxsize)
        with self._lock:
            self._subscribers.add(q)
            total = len(self._subscribers)
        logger.info("Event stream subscribed: total_subscribers=%s", total)
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        with self._lock:
            self._subscribers.discard(q)
            total = len(self._subscribers)
        logger.info("Event stream unsubscribed: total_subscribers=%s", total)

    def publish(self, event_type: str, data: Any) -> int:
        """
        Fan a message out to all current subscribers.

        Returns the number of subscribers that accepted the message.
        """
        message = {"type": event_type, "data": data}
        with self._lock:
            targets = list(self._subscribers)

        delivered = 0
        for q in targets:
            try:
                q.put_nowait(message)
                delivered += 1
            except queue.Full:
                logger.warning("Dropping %s event for a slow subscriber", event_type)
        return delivered


def format_sse(message: dict) -> str:
    """Encode one relay message as a Server-Sent Events frame."""
    return f"event: {message['type']}\ndata: {json.dumps(message, default=str)}\n\n"
