"""
Event broadcaster - fire-and-forget delivery of order lifecycle events.

A failed emission never fails or rolls back the command that produced it:
the mutation has already been written, and observers recover on their next
reconciliation fetch.
"""

import logging

from tableside_schemas import OrderEvent

from apps.web.realtime.channels import EventChannel
from apps.web.realtime.exceptions import TransportError

logger = logging.getLogger(__name__)


class EventBroadcaster:
    """Publishes lifecycle events through an owned event channel."""

    def __init__(self, channel: EventChannel) -> None:
        self.channel = channel

    def emit(self, event: OrderEvent) -> bool:
        """
        Publish an event, swallowing transport failures.

        Args:
            event: The lifecycle event to deliver.

        Returns:
            True if the channel accepted the event, False if emission failed.
        """
        try:
            receivers = self.channel.publish(event)
        except TransportError as e:
            logger.warning(
                "Failed to emit %s via %s: %s",
                event.event_type,
                self.channel.backend,
                e.message,
            )
            return False
        except Exception:
            logger.exception(
                "Unexpected error emitting %s via %s",
                event.event_type,
                self.channel.backend,
            )
            return False

        if receivers == 0:
            logger.debug("Emitted %s with no connected observers", event.event_type)
        else:
            logger.debug("Emitted %s to %d observer(s)", event.event_type, receivers)
        return True
