"""In-process publish/subscribe bus with a delivery queue per listener."""

from __future__ import annotations

import itertools
import logging
import queue
import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Iterable, Iterator, Optional, Tuple

from flask import current_app

logger = logging.getLogger(__name__)

_OPEN = "open"
_CLOSING = "closing"
_CANCELLED = "cancelled"


class EventBusClosed(RuntimeError):
    """Raised when subscribing to a bus that has been torn down."""


@dataclass(frozen=True)
class DomainEvent:
    topic: str
    payload: Any
    sequence: int


class Subscription:
    """Live stream of events for a set of topics.

    ``get`` suspends until the next event is available and returns ``None``
    once the stream has ended. ``cancel`` discards anything still queued;
    ``close`` lets the consumer drain the queue before the stream ends.
    """

    def __init__(self, bus: "EventBus", topics: Iterable[str], maxsize: int = 0) -> None:
        self._bus = bus
        self.topics = frozenset(topics)
        self._cond = threading.Condition()
        self._pending: Deque[DomainEvent] = deque(maxlen=maxsize or None)
        self._state = _OPEN
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._state != _OPEN

    @property
    def pending(self) -> int:
        with self._cond:
            return len(self._pending)

    def _deliver(self, event: DomainEvent) -> bool:
        with self._cond:
            if self._state != _OPEN:
                return False
            if self._pending.maxlen is not None and len(self._pending) == self._pending.maxlen:
                # deque(maxlen) evicts the oldest entry on append
                self.dropped += 1
                logger.warning(
                    "Subscriber queue full on %s, dropping event #%s",
                    event.topic,
                    self._pending[0].sequence,
                )
            self._pending.append(event)
            self._cond.notify()
            return True

    def get(self, timeout: Optional[float] = None) -> Optional[DomainEvent]:
        """Return the next event, or ``None`` once the stream has ended.

        Raises ``queue.Empty`` when ``timeout`` elapses with nothing to return.
        """
        with self._cond:
            ready = self._cond.wait_for(lambda: self._pending or self._state != _OPEN, timeout)
            if not ready:
                raise queue.Empty
            if self._pending:
                return self._pending.popleft()
            return None

    def cancel(self) -> None:
        with self._cond:
            if self._state == _CANCELLED:
                return
            self._state = _CANCELLED
            self._pending.clear()
            self._cond.notify_all()
        self._bus._remove(self)

    def close(self) -> None:
        with self._cond:
            if self._state != _OPEN:
                return
            self._state = _CLOSING
            self._cond.notify_all()
        self._bus._remove(self)

    def __iter__(self) -> Iterator[DomainEvent]:
        while True:
            event = self.get()
            if event is None:
                return
            yield event

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.cancel()


class EventBus:
    """Topic-keyed broadcast bus.

    Listener registration, removal and fan-out are serialized by one lock, so
    a publish never sees a half-applied subscribe or unsubscribe. Delivery is
    an append to each listener's queue and never waits on the consumer.
    """

    def __init__(self, queue_maxsize: int = 0) -> None:
        self.queue_maxsize = queue_maxsize
        self._lock = threading.Lock()
        self._listeners: Dict[str, Tuple[Subscription, ...]] = {}
        self._sequence = itertools.count(1)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, topics: Iterable[str] | str) -> Subscription:
        if isinstance(topics, str):
            topics = [topics]
        subscription = Subscription(self, topics, maxsize=self.queue_maxsize)
        if not subscription.topics:
            raise ValueError("at least one topic is required")
        with self._lock:
            if self._closed:
                raise EventBusClosed("event bus is closed")
            for topic in subscription.topics:
                self._listeners[topic] = self._listeners.get(topic, ()) + (subscription,)
        logger.debug("Listener registered on %s", sorted(subscription.topics))
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.cancel()

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            for topic in subscription.topics:
                remaining = tuple(s for s in self._listeners.get(topic, ()) if s is not subscription)
                if remaining:
                    self._listeners[topic] = remaining
                else:
                    self._listeners.pop(topic, None)
        logger.debug("Listener released from %s", sorted(subscription.topics))

    def publish(self, topic: str, payload: Any) -> int:
        """Hand ``payload`` to every listener on ``topic``; return how many took it."""
        with self._lock:
            if self._closed:
                logger.debug("Event bus closed, discarding %s", topic)
                return 0
            event = DomainEvent(topic=topic, payload=payload, sequence=next(self._sequence))
            delivered = 0
            for subscription in self._listeners.get(topic, ()):
                if subscription._deliver(event):
                    delivered += 1
        return delivered

    def listener_count(self, topic: str) -> int:
        with self._lock:
            return len(self._listeners.get(topic, ()))

    def close(self) -> None:
        """Stop accepting work and end every open stream once it is drained."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            subscriptions = {s for listeners in self._listeners.values() for s in listeners}
        for subscription in subscriptions:
            subscription.close()
        logger.info("Event bus closed (%s open subscriptions ended)", len(subscriptions))


def current_event_bus() -> EventBus:
    """Return the bus attached to the active Flask application."""
    return current_app.extensions["event_bus"]
