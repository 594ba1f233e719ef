"""Redis pub/sub event channel for multi-process deployments."""

import logging
from typing import Any

import redis
from pydantic import ValidationError
from tableside_schemas import OrderEvent, parse_event

from apps.web.realtime.exceptions import SubscriptionClosedError, TransportError

logger = logging.getLogger(__name__)


class RedisSubscription:
    """Subscription wrapping a redis PubSub connection."""

    def __init__(self, pubsub: Any, channel_name: str) -> None:
        self._pubsub = pubsub
        self._channel_name = channel_name
        self.closed = False

    def get(self, timeout: float | None = None) -> OrderEvent | None:
        if self.closed:
            raise SubscriptionClosedError("Subscription is closed", backend="redis")
        try:
            message = self._pubsub.get_message(
                ignore_subscribe_messages=True, timeout=timeout
            )
        except redis.RedisError as e:
            raise TransportError(str(e), backend="redis") from e

        if message is None or message.get("type") != "message":
            return None

        try:
            return parse_event(message["data"])
        except ValidationError as e:
            logger.warning(
                "Ignoring malformed event on %s: %s", self._channel_name, e
            )
            return None

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._pubsub.unsubscribe(self._channel_name)
            self._pubsub.close()
        except redis.RedisError as e:
            logger.warning("Error closing subscription to %s: %s", self._channel_name, e)


class RedisEventChannel:
    """
    Event channel publishing JSON-encoded events on one redis pub/sub channel.

    Redis pub/sub is fire-and-forget, which matches the at-most-once contract:
    subscribers that are not connected when an event is published never see it.
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        channel_name: str = "tableside:orders",
        client: Any | None = None,
    ) -> None:
        """
        Initialize the channel.

        Args:
            url: Redis connection URL, used when no client is given.
            channel_name: Pub/sub channel carrying order events.
            client: Optional redis client for dependency injection (testing).
        """
        self._client = client or redis.Redis.from_url(url)
        self._owns_client = client is None
        self.channel_name = channel_name

    @property
    def backend(self) -> str:
        return "redis"

    def publish(self, event: OrderEvent) -> int:
        try:
            receivers = self._client.publish(self.channel_name, event.model_dump_json())
        except redis.RedisError as e:
            raise TransportError(str(e), backend=self.backend) from e
        return int(receivers)

    def subscribe(self) -> RedisSubscription:
        try:
            pubsub = self._client.pubsub(ignore_subscribe_messages=True)
            pubsub.subscribe(self.channel_name)
        except redis.RedisError as e:
            raise TransportError(str(e), backend=self.backend) from e
        return RedisSubscription(pubsub, self.channel_name)

    def close(self) -> None:
        """Close the redis client if we own it."""
        if self._owns_client:
            self._client.close()
