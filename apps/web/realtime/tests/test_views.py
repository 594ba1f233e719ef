"""Tests for the server-sent events endpoint."""

import json
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from tableside_schemas import OrderPaidEvent, OrderPayRequestedEvent

from apps.web.realtime.exceptions import SubscriptionClosedError, TransportError
from apps.web.realtime.views import format_sse, sse_frames

STREAM_URL = "/api/events/stream"


class TestFormatSse:
    def test_frame_carries_id_name_and_payload(self):
        event = OrderPaidEvent(order_ids=["a1"])

        frame = format_sse(event)

        lines = frame.split("\n")
        assert lines[0] == f"id: {event.event_id}"
        assert lines[1] == "event: order.paid"
        assert json.loads(lines[2].removeprefix("data: "))["order_ids"] == ["a1"]
        assert frame.endswith("\n\n")

    def test_envelope_only_frame(self):
        event = OrderPayRequestedEvent(
            table_number=4, order_ids=["a1"], total=Decimal("42.00")
        )

        frame = format_sse(event, full=False)

        data = json.loads(frame.split("\n")[2].removeprefix("data: "))
        assert set(data) == {"event_id", "event_type", "occurred_at"}
        assert data["event_type"] == "order.payRequested"


class TestSseFrames:
    """Tests for the frame generator."""

    def test_events_then_end_on_close(self):
        event = OrderPaidEvent(order_ids=["a1"])
        subscription = MagicMock()
        subscription.get.side_effect = [event, SubscriptionClosedError("closed")]

        frames = list(sse_frames(subscription, keepalive_seconds=5))

        assert frames == [": connected\n\n", format_sse(event)]
        subscription.get.assert_called_with(timeout=5)
        subscription.close.assert_called_once()

    def test_keepalive_on_idle(self):
        subscription = MagicMock()
        subscription.get.side_effect = [None, None, SubscriptionClosedError("closed")]

        frames = list(sse_frames(subscription, keepalive_seconds=1))

        assert frames == [": connected\n\n", ": keepalive\n\n", ": keepalive\n\n"]

    def test_transport_error_ends_stream(self, caplog):
        subscription = MagicMock()
        subscription.get.side_effect = TransportError("redis went away", backend="redis")

        frames = list(sse_frames(subscription, keepalive_seconds=1))

        assert frames == [": connected\n\n"]
        assert "redis went away" in caplog.text
        subscription.close.assert_called_once()

    def test_client_disconnect_closes_subscription(self):
        subscription = MagicMock()
        subscription.get.return_value = None

        frames = sse_frames(subscription, keepalive_seconds=1)
        next(frames)
        frames.close()

        subscription.close.assert_called_once()


@pytest.mark.django_db
class TestEventStreamView:
    """Tests for GET /api/events/stream."""

    def test_anonymous_rejected(self, api_client):
        response = api_client.get(STREAM_URL)

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_staff_receives_events(self, staff_client, event_channel):
        response = staff_client.get(STREAM_URL)

        assert response.status_code == 200
        assert response["Content-Type"] == "text/event-stream"
        assert response["Cache-Control"] == "no-cache"
        assert response["X-Accel-Buffering"] == "no"
        assert event_channel.subscriber_count == 1

        event = OrderPaidEvent(order_ids=["a1"])
        event_channel.publish(event)
        event_channel.close()
        content = b"".join(response.streaming_content).decode()

        assert content == ": connected\n\n" + format_sse(event)
        assert event_channel.subscriber_count == 0

    def test_owner_stream_hides_payloads(self, diner_client, event_channel):
        """Diners are told that something changed, not what other tables owe."""
        response = diner_client.get(STREAM_URL)
        assert response.status_code == 200

        event = OrderPayRequestedEvent(
            table_number=7, order_ids=["b2"], total=Decimal("88.00")
        )
        event_channel.publish(event)
        event_channel.close()
        content = b"".join(response.streaming_content).decode()

        assert content == ": connected\n\n" + format_sse(event, full=False)
        assert "88.00" not in content

    def test_channel_unavailable(self, staff_client):
        channel = MagicMock()
        channel.subscribe.side_effect = TransportError("redis down", backend="redis")

        with patch("apps.web.realtime.views.get_event_channel", return_value=channel):
            response = staff_client.get(STREAM_URL)

        assert response.status_code == 503

    def test_post_not_allowed(self, staff_client):
        assert staff_client.post(STREAM_URL).status_code == 405
