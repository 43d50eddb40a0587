"""
In-process fan-out of committed change events to live subscribers.

No persistence and no history: a subscriber sees only events published after
it registered. Each subscriber owns a bounded asyncio.Queue. ``publish`` is a
plain (non-async) call that puts the event on every queue with ``put_nowait``,
so it never waits on a slow consumer and events leave in call order. When a
subscriber's queue is full the event is dropped for that subscriber alone.

The bus belongs to the event loop that runs the application; it is not meant
to be called from other threads.
"""

import asyncio
import itertools
import logging
from typing import Any, Dict, List, Optional, Tuple

from inventory_tracker.core.exceptions import PublishDropped
from inventory_tracker.schemas.events import ChangeEvent

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 256

_CLOSED = object()


class Subscription:
    """
    Handle returned by ChangeBus.subscribe().

    Iterate it with ``async for`` to receive events in publish order. Once the
    subscription is closed, events already queued are still delivered and the
    iterator then ends.
    """

    def __init__(self, subscriber_id: int, maxsize: int):
        self.id = subscriber_id
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _offer(self, event: ChangeEvent) -> bool:
        if self._closed:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            return False
        return True

    def _close(self):
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            # Reader is not waiting; it sees the closed flag once drained
            pass

    async def get(self) -> Optional[ChangeEvent]:
        """Next event, or None once the subscription is closed and drained."""
        if self._closed and self._queue.empty():
            return None
        item = await self._queue.get()
        if item is _CLOSED:
            return None
        return item

    def drain(self) -> List[ChangeEvent]:
        """Take every queued event without waiting."""
        events = []
        while True:
            try:
                item = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            if item is not _CLOSED:
                events.append(item)
        return events

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeEvent:
        event = await self.get()
        if event is None:
            raise StopAsyncIteration
        return event

    def __repr__(self) -> str:
        return f"<Subscription(id={self.id}, closed={self._closed}, dropped={self.dropped})>"


class ChangeBus:
    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE):
        if queue_size < 1:
            raise ValueError("queue_size must be at least 1")
        self.queue_size = queue_size
        self._subscribers: Dict[int, Subscription] = {}
        self._ids = itertools.count(1)
        self._published = 0
        self._dropped = 0

    def subscribe(self) -> Subscription:
        """Register a subscriber for every event published from now on."""
        subscription = Subscription(next(self._ids), self.queue_size)
        self._subscribers[subscription.id] = subscription
        logger.info(f"Subscriber {subscription.id} registered. Total subscribers: {len(self._subscribers)}")
        return subscription

    def unsubscribe(self, subscription: Subscription):
        """Stop delivering to a subscriber. Queued events stay readable."""
        removed = self._subscribers.pop(subscription.id, None)
        subscription._close()
        if removed is not None:
            logger.info(f"Subscriber {subscription.id} removed. Total subscribers: {len(self._subscribers)}")

    def publish(self, event: ChangeEvent) -> int:
        """
        Deliver an event to every registered subscriber.

        Never raises and never waits. Returns the number of subscribers that
        accepted the event.
        """
        self._published += 1
        delivered = 0
        # Snapshot so subscribe/unsubscribe during delivery cannot disturb iteration
        targets: Tuple[Subscription, ...] = tuple(self._subscribers.values())
        for subscription in targets:
            if subscription._offer(event):
                delivered += 1
            elif not subscription.closed:
                self._dropped += 1
                logger.warning(str(PublishDropped(subscription.id, event.kind.value, event.name)))
        logger.debug(f"Published {event.kind.value} '{event.name}' to {delivered}/{len(targets)} subscribers")
        return delivered

    def close(self):
        """Unsubscribe everyone. Called on application shutdown."""
        for subscription in tuple(self._subscribers.values()):
            self.unsubscribe(subscription)
        logger.info("Change bus closed")

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def stats(self) -> Dict[str, Any]:
        return {
            "subscribers": len(self._subscribers),
            "published": self._published,
            "dropped": self._dropped,
            "queue_size": self.queue_size,
        }
