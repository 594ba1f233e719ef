"""Tests for the event channels."""

from unittest.mock import MagicMock

import pytest
import redis
from tableside_schemas import OrderPaidEvent, OrderUpdatedEvent

from apps.web.realtime.channels import (
    EventChannel,
    InMemoryEventChannel,
    RedisEventChannel,
    Subscription,
    get_channel,
)
from apps.web.realtime.exceptions import SubscriptionClosedError, TransportError


@pytest.fixture
def paid_event() -> OrderPaidEvent:
    return OrderPaidEvent(order_ids=["a1", "b2"])


class TestGetChannel:
    """Tests for the channel factory."""

    def test_memory(self):
        channel = get_channel("memory")
        assert isinstance(channel, InMemoryEventChannel)
        assert isinstance(channel, EventChannel)

    def test_redis_with_injected_client(self):
        client = MagicMock()
        channel = get_channel("redis", client=client, channel_name="orders")

        assert isinstance(channel, RedisEventChannel)
        assert channel.channel_name == "orders"

    def test_unsupported_backend(self):
        with pytest.raises(ValueError, match="Unsupported event backend"):
            get_channel("carrier-pigeon")


class TestInMemoryEventChannel:
    """Tests for in-process fan-out."""

    def test_fan_out_to_every_subscriber(self, paid_event):
        channel = InMemoryEventChannel()
        first = channel.subscribe()
        second = channel.subscribe()

        assert channel.publish(paid_event) == 2
        assert first.get(timeout=0).event_id == paid_event.event_id
        assert second.get(timeout=0).event_id == paid_event.event_id
        assert isinstance(first, Subscription)

    def test_late_subscriber_misses_earlier_events(self, paid_event):
        channel = InMemoryEventChannel()

        assert channel.publish(paid_event) == 0
        subscription = channel.subscribe()

        assert subscription.get(timeout=0) is None

    def test_get_times_out(self):
        subscription = InMemoryEventChannel().subscribe()
        assert subscription.get(timeout=0.01) is None

    def test_slow_subscriber_drops_instead_of_blocking(self, paid_event, caplog):
        channel = InMemoryEventChannel(queue_size=1)
        slow = channel.subscribe()

        assert channel.publish(paid_event) == 1
        assert channel.publish(OrderPaidEvent(order_ids=["c3"])) == 0

        assert slow.dropped == 1
        assert "Dropping order.paid" in caplog.text
        assert slow.get(timeout=0).event_id == paid_event.event_id

    def test_closed_subscription(self, paid_event):
        channel = InMemoryEventChannel()
        subscription = channel.subscribe()
        subscription.close()
        subscription.close()

        assert channel.subscriber_count == 0
        assert channel.publish(paid_event) == 0
        with pytest.raises(SubscriptionClosedError):
            subscription.get(timeout=0)

    def test_close_drains_queued_events_first(self, paid_event):
        channel = InMemoryEventChannel()
        subscription = channel.subscribe()
        channel.publish(paid_event)
        subscription.close()

        assert subscription.get(timeout=0).event_id == paid_event.event_id
        with pytest.raises(SubscriptionClosedError):
            subscription.get(timeout=0)

    def test_closed_channel_rejects_publish_and_subscribe(self, paid_event):
        channel = InMemoryEventChannel()
        subscription = channel.subscribe()
        channel.close()

        assert subscription.closed
        with pytest.raises(TransportError):
            channel.publish(paid_event)
        with pytest.raises(TransportError):
            channel.subscribe()


class TestRedisEventChannel:
    """Tests for the redis pub/sub channel with a mocked client."""

    @pytest.fixture
    def client(self) -> MagicMock:
        return MagicMock()

    @pytest.fixture
    def channel(self, client) -> RedisEventChannel:
        return RedisEventChannel(client=client, channel_name="tableside:orders")

    def test_publish_sends_json(self, channel, client, paid_event):
        client.publish.return_value = 3

        assert channel.publish(paid_event) == 3

        name, payload = client.publish.call_args[0]
        assert name == "tableside:orders"
        assert '"event_type":"order.paid"' in payload

    def test_publish_failure_raises_transport_error(self, channel, client, paid_event):
        client.publish.side_effect = redis.ConnectionError("Connection refused")

        with pytest.raises(TransportError) as exc_info:
            channel.publish(paid_event)

        assert exc_info.value.backend == "redis"

    def test_subscribe_and_receive(self, channel, client):
        event = OrderUpdatedEvent(
            order_id="a1", kitchen_status="ready", payment_status="unpaid"
        )
        pubsub = client.pubsub.return_value
        pubsub.get_message.return_value = {
            "type": "message",
            "data": event.model_dump_json().encode(),
        }

        subscription = channel.subscribe()
        received = subscription.get(timeout=1.0)

        pubsub.subscribe.assert_called_once_with("tableside:orders")
        pubsub.get_message.assert_called_once_with(
            ignore_subscribe_messages=True, timeout=1.0
        )
        assert isinstance(received, OrderUpdatedEvent)
        assert received.event_id == event.event_id
        assert received.kitchen_status == "ready"

    def test_timeout_returns_none(self, channel, client):
        client.pubsub.return_value.get_message.return_value = None
        assert channel.subscribe().get(timeout=0.1) is None

    def test_malformed_message_is_skipped(self, channel, client, caplog):
        client.pubsub.return_value.get_message.return_value = {
            "type": "message",
            "data": b'{"event_type": "order.exploded"}',
        }

        assert channel.subscribe().get(timeout=0.1) is None
        assert "Ignoring malformed event" in caplog.text

    def test_read_failure_raises_transport_error(self, channel, client):
        client.pubsub.return_value.get_message.side_effect = redis.ConnectionError("gone")

        with pytest.raises(TransportError):
            channel.subscribe().get(timeout=0.1)

    def test_subscribe_failure_raises_transport_error(self, channel, client):
        client.pubsub.return_value.subscribe.side_effect = redis.ConnectionError("gone")

        with pytest.raises(TransportError):
            channel.subscribe()

    def test_close_subscription(self, channel, client):
        pubsub = client.pubsub.return_value
        subscription = channel.subscribe()

        subscription.close()
        subscription.close()

        pubsub.unsubscribe.assert_called_once_with("tableside:orders")
        pubsub.close.assert_called_once()
        with pytest.raises(SubscriptionClosedError):
            subscription.get(timeout=0)

    def test_injected_client_is_not_closed(self, channel, client):
        channel.close()
        client.close.assert_not_called()
