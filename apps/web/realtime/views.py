"""
Server-sent events endpoint - pushes order lifecycle events to browsers.

Each connection holds its own channel subscription. Frames carry the event
name and JSON payload; comment frames keep idle proxies from closing the
connection. Staff get the full payload; other subscribers only the event
envelope.
"""

import logging
from collections.abc import Iterator

from django.conf import settings
from django.http import HttpRequest, HttpResponseBase, JsonResponse, StreamingHttpResponse
from django.views.decorators.http import require_GET

from tableside_schemas import OrderEvent

from apps.web.realtime.apps import get_event_channel
from apps.web.realtime.channels import Subscription
from apps.web.realtime.exceptions import SubscriptionClosedError, TransportError

logger = logging.getLogger(__name__)

ENVELOPE_FIELDS = {"event_id", "event_type", "occurred_at"}


def format_sse(event: OrderEvent, full: bool = True) -> str:
    """Encode an event as one text/event-stream frame."""
    data = event.model_dump_json(include=None if full else ENVELOPE_FIELDS)
    return f"id: {event.event_id}\nevent: {event.event_type}\ndata: {data}\n\n"


def sse_frames(
    subscription: Subscription, keepalive_seconds: float, full: bool = True
) -> Iterator[str]:
    """
    Yield SSE frames until the subscription closes or the client goes away.

    The subscription is always closed when the generator ends.
    """
    try:
        yield ": connected\n\n"
        while True:
            try:
                event = subscription.get(timeout=keepalive_seconds)
            except SubscriptionClosedError:
                return
            except TransportError as e:
                logger.warning("Event stream ended by transport error: %s", e.message)
                return
            if event is None:
                yield ": keepalive\n\n"
                continue
            yield format_sse(event, full=full)
    finally:
        subscription.close()


@require_GET
def event_stream(request: HttpRequest) -> HttpResponseBase:
    """
    GET /api/events/stream

    Open to staff and to anyone who can own orders. Clients re-fetch their
    orders on every frame and after every reconnect.
    """
    is_staff = request.user.is_authenticated and request.user.is_staff
    if not is_staff and not getattr(request, "owner_ref", None):
        return JsonResponse({"success": False, "message": "Unauthorized"}, status=401)

    try:
        subscription = get_event_channel().subscribe()
    except TransportError as e:
        logger.warning("Could not open event stream: %s", e.message)
        return JsonResponse(
            {"success": False, "message": "Event stream unavailable"}, status=503
        )

    response = StreamingHttpResponse(
        sse_frames(
            subscription, settings.ORDER_EVENTS_KEEPALIVE_SECONDS, full=is_staff
        ),
        content_type="text/event-stream",
    )
    response["Cache-Control"] = "no-cache"
    response["X-Accel-Buffering"] = "no"
    return response
