"""Base event channel protocol - interface for every push transport."""

from typing import Protocol, runtime_checkable

from tableside_schemas import OrderEvent


@runtime_checkable
class Subscription(Protocol):
    """
    One observer's view of a channel.

    Delivery is at-most-once: events published while no subscription is open,
    or dropped by a slow reader, are gone.
    """

    def get(self, timeout: float | None = None) -> OrderEvent | None:
        """
        Wait for the next event.

        Args:
            timeout: Seconds to wait. None waits forever.

        Returns:
            The next event, or None if the timeout elapsed first.

        Raises:
            SubscriptionClosedError: If the subscription was closed.
            TransportError: If the underlying transport failed.
        """
        ...

    def close(self) -> None:
        """Stop receiving events. Safe to call more than once."""
        ...


@runtime_checkable
class EventChannel(Protocol):
    """
    Protocol for publish/subscribe transports carrying order events.

    Implementations: InMemoryEventChannel (single process), RedisEventChannel.
    """

    @property
    def backend(self) -> str:
        """Short name of the transport (e.g. "memory", "redis")."""
        ...

    def publish(self, event: OrderEvent) -> int:
        """
        Fan an event out to current subscribers.

        Args:
            event: The lifecycle event to deliver.

        Returns:
            Number of subscribers the transport reports as reached.

        Raises:
            TransportError: If the event could not be handed to the transport.
        """
        ...

    def subscribe(self) -> Subscription:
        """Open a new subscription receiving events published from now on."""
        ...

    def close(self) -> None:
        """Release transport resources."""
        ...
