"""In-process event channel for single-worker deployments and tests."""

import logging
import queue
import threading

from tableside_schemas import OrderEvent

from apps.web.realtime.exceptions import SubscriptionClosedError, TransportError

logger = logging.getLogger(__name__)

_CLOSED = object()


class InMemorySubscription:
    """Subscription backed by a bounded queue."""

    def __init__(self, channel: "InMemoryEventChannel", maxsize: int) -> None:
        self._channel = channel
        self._queue: queue.Queue[object] = queue.Queue(maxsize=maxsize)
        self.closed = False
        self.dropped = 0

    def _offer(self, event: OrderEvent) -> bool:
        """Queue an event without blocking the publisher."""
        if self.closed:
            return False
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            self.dropped += 1
            logger.warning(
                "Dropping %s for slow subscriber (%d dropped so far)",
                event.event_type,
                self.dropped,
            )
            return False
        return True

    def get(self, timeout: float | None = None) -> OrderEvent | None:
        if self.closed and self._queue.empty():
            raise SubscriptionClosedError("Subscription is closed", backend="memory")
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _CLOSED:
            raise SubscriptionClosedError("Subscription is closed", backend="memory")
        return item  # type: ignore[return-value]

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._channel._discard(self)
        # Wake a reader blocked in get()
        try:
            self._queue.put_nowait(_CLOSED)
        except queue.Full:
            pass


class InMemoryEventChannel:
    """
    Event channel that fans out to subscribers in the current process.

    Only suitable when a single process serves every client; otherwise use
    RedisEventChannel. Slow subscribers lose events instead of blocking
    publishers.
    """

    DEFAULT_QUEUE_SIZE = 256

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self._queue_size = queue_size
        self._subscribers: set[InMemorySubscription] = set()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def backend(self) -> str:
        return "memory"

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: OrderEvent) -> int:
        if self._closed:
            raise TransportError("Channel is closed", backend=self.backend)
        with self._lock:
            subscribers = list(self._subscribers)
        return sum(1 for sub in subscribers if sub._offer(event))

    def subscribe(self) -> InMemorySubscription:
        if self._closed:
            raise TransportError("Channel is closed", backend=self.backend)
        subscription = InMemorySubscription(self, self._queue_size)
        with self._lock:
            self._subscribers.add(subscription)
        return subscription

    def _discard(self, subscription: InMemorySubscription) -> None:
        with self._lock:
            self._subscribers.discard(subscription)

    def close(self) -> None:
        self._closed = True
        with self._lock:
            subscribers = list(self._subscribers)
        for subscription in subscribers:
            subscription.close()
