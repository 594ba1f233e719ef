"""Event channels - push transports for order lifecycle events."""

from typing import Any

from apps.web.realtime.channels.base import EventChannel, Subscription
from apps.web.realtime.channels.memory import InMemoryEventChannel
from apps.web.realtime.channels.redis import RedisEventChannel

BACKENDS = ("memory", "redis")


def get_channel(backend: str, **kwargs: Any) -> EventChannel:
    """
    Build an event channel for the configured backend.

    Args:
        backend: "memory" or "redis".
        **kwargs: Passed to the channel constructor.
            For RedisEventChannel: url, channel_name.

    Returns:
        A channel implementing the EventChannel protocol.

    Raises:
        ValueError: If the backend is not supported.

    Example:
        channel = get_channel("redis", url="redis://cache:6379/0")
        channel.publish(OrderPaidEvent(order_ids=[...]))
    """
    if backend == "memory":
        return InMemoryEventChannel(**kwargs)
    elif backend == "redis":
        return RedisEventChannel(**kwargs)
    else:
        raise ValueError(
            f"Unsupported event backend: {backend}. Supported: {', '.join(BACKENDS)}"
        )


__all__ = [
    "BACKENDS",
    "EventChannel",
    "InMemoryEventChannel",
    "RedisEventChannel",
    "Subscription",
    "get_channel",
]
