"""Fan-out of store change events to connected viewers."""

import asyncio
import logging
import threading
from typing import List, Optional, Set

from common.constants import SUBSCRIBER_BUFFER_SIZE
from common.types import ChangeEvent

logger = logging.getLogger(__name__)

_CLOSED = object()


class Subscription:
    """
    One viewer's channel of change events.

    Owned by the event loop that created it; the notifier only touches the
    queue through that loop's call_soon_threadsafe.
    """

    def __init__(self, notifier: "ChangeNotifier", loop: asyncio.AbstractEventLoop, buffer_size: int):
        self._notifier = notifier
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=buffer_size)
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _offer(self, event: ChangeEvent) -> None:
        if self._closed:
            return
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
            logger.warning(f"Viewer buffer full, dropped oldest event (total dropped={self.dropped})")
        self._queue.put_nowait(event)

    def _end(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    async def get(self) -> Optional[ChangeEvent]:
        """
        Wait for the next event.

        Returns:
            The next ChangeEvent, or None once the subscription is closed
        """
        if self._closed and self._queue.empty():
            return None
        item = await self._queue.get()
        if item is _CLOSED:
            return None
        return item

    def close(self) -> None:
        """Unsubscribe; must run on the owning loop."""
        self._notifier.unsubscribe(self)
        self._end()

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeEvent:
        event = await self.get()
        if event is None:
            raise StopAsyncIteration
        return event


class ChangeNotifier:
    """
    Broadcasts ChangeEvents to every subscribed viewer.

    publish() may be called from any thread and never waits on a viewer:
    each subscription has a bounded buffer that drops its oldest event when
    full. Events are scheduled onto each viewer's loop while holding the
    registry lock, so every viewer observes the global publish order.
    """

    def __init__(self, buffer_size: int = SUBSCRIBER_BUFFER_SIZE):
        if buffer_size < 1:
            raise ValueError(f"buffer_size must be positive: {buffer_size}")
        self.buffer_size = buffer_size
        self._lock = threading.Lock()
        self._subscriptions: Set[Subscription] = set()
        self._closed = False

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def subscribe(self) -> Subscription:
        """
        Register a viewer. Must be called from the loop that will consume it.

        Raises:
            RuntimeError: If called outside a running loop or after close()
        """
        loop = asyncio.get_running_loop()
        subscription = Subscription(self, loop, self.buffer_size)
        with self._lock:
            if self._closed:
                raise RuntimeError("Change notifier is closed")
            self._subscriptions.add(subscription)
            count = len(self._subscriptions)
        logger.info(f"Viewer subscribed (viewers={count})")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription not in self._subscriptions:
                return
            self._subscriptions.discard(subscription)
            count = len(self._subscriptions)
        logger.info(f"Viewer unsubscribed (viewers={count})")

    def publish(self, event: ChangeEvent) -> int:
        """
        Deliver an event to every current subscriber.

        Returns:
            Number of subscribers the event was scheduled for
        """
        delivered = 0
        with self._lock:
            stale: List[Subscription] = []
            for subscription in self._subscriptions:
                try:
                    subscription._loop.call_soon_threadsafe(subscription._offer, event)
                    delivered += 1
                except RuntimeError:
                    stale.append(subscription)
            for subscription in stale:
                self._subscriptions.discard(subscription)

        if stale:
            logger.info(f"Removed {len(stale)} viewer(s) whose event loop is closed")
        logger.debug(f"Published {event.action.value} event for {list(event.affected)} to {delivered} viewer(s)")
        return delivered

    def close(self) -> None:
        """Drop every subscription; consumers see end of stream."""
        with self._lock:
            self._closed = True
            subscriptions = list(self._subscriptions)
            self._subscriptions.clear()

        for subscription in subscriptions:
            try:
                subscription._loop.call_soon_threadsafe(subscription._end)
            except RuntimeError:
                # loop already closed, nobody left to read the end marker
                pass
        logger.info(f"Change notifier closed ({len(subscriptions)} viewer(s) dropped)")
