"""In-process publish/subscribe feed for committed state changes."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

QUEUE_TOPIC = "queue"

Listener = Callable[[str, dict[str, Any]], None]


def draft_topic(session_id: str) -> str:
    return f"draft:{session_id}"


def rating_topic(identity: str) -> str:
    return f"rating:{identity}"


@dataclass(frozen=True)
class Subscription:
    feed: ChangeFeed
    topic: str
    listener: Listener

    def unsubscribe(self) -> None:
        self.feed.unsubscribe(self)


class ChangeFeed:
    """Fan committed changes out to listeners of a topic.

    Services publish only after their transaction commits, so listeners never
    observe state that was rolled back.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def subscribe(self, topic: str, listener: Listener) -> Subscription:
        with self._lock:
            self._listeners[topic].append(listener)
        return Subscription(feed=self, topic=topic, listener=listener)

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            listeners = self._listeners.get(subscription.topic, [])
            if subscription.listener in listeners:
                listeners.remove(subscription.listener)
            if not listeners:
                self._listeners.pop(subscription.topic, None)

    def listener_count(self, topic: str) -> int:
        with self._lock:
            return len(self._listeners.get(topic, []))

    def publish(self, topic: str, payload: dict[str, Any]) -> int:
        """Deliver one event; returns how many listeners received it."""
        with self._lock:
            listeners = list(self._listeners.get(topic, []))

        delivered = 0
        for listener in listeners:
            try:
                listener(topic, payload)
            except Exception:
                # The change is already committed.
                logger.exception("listener for topic=%s failed", topic)
                continue
            delivered += 1
        return delivered


__all__ = [
    "ChangeFeed",
    "Listener",
    "QUEUE_TOPIC",
    "Subscription",
    "draft_topic",
    "rating_topic",
]
