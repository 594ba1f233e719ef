"""Order lifecycle events - one tagged variant per event name.

Events are invalidation hints. Observers re-fetch authoritative state on
receipt and never treat the payload as the new order state.
"""

import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter

from tableside_schemas.orders import KitchenStatus, OrderKind, PaymentStatus

ORDER_CREATED = "order.created"
ORDER_UPDATED = "order.updated"
ORDER_PAID = "order.paid"
ORDER_PAY_REQUESTED = "order.payRequested"


def _event_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(UTC)


class OrderEventBase(BaseModel):
    """Base for all order lifecycle events."""

    event_id: str = Field(default_factory=_event_id)
    occurred_at: datetime = Field(default_factory=_now)


class OrderCreatedEvent(OrderEventBase):
    """A new order was placed or a session was merged into a final order."""

    event_type: Literal["order.created"] = ORDER_CREATED
    order_id: str
    table_number: int
    order_kind: OrderKind
    amount: Decimal
    session_ref: str = ""


class OrderUpdatedEvent(OrderEventBase):
    """Kitchen and/or payment status of one order changed."""

    event_type: Literal["order.updated"] = ORDER_UPDATED
    order_id: str
    kitchen_status: KitchenStatus
    payment_status: PaymentStatus


class OrderPaidEvent(OrderEventBase):
    """One or more orders were marked paid."""

    event_type: Literal["order.paid"] = ORDER_PAID
    order_ids: list[str] = Field(default_factory=list)


class OrderPayRequestedEvent(OrderEventBase):
    """A table asked staff to collect payment."""

    event_type: Literal["order.payRequested"] = ORDER_PAY_REQUESTED
    table_number: int | None = None
    session_ref: str = ""
    order_ids: list[str]
    total: Decimal


OrderEvent = Annotated[
    OrderCreatedEvent | OrderUpdatedEvent | OrderPaidEvent | OrderPayRequestedEvent,
    Field(discriminator="event_type"),
]

_event_adapter: TypeAdapter[OrderEvent] = TypeAdapter(OrderEvent)

EVENT_NAMES = (ORDER_CREATED, ORDER_UPDATED, ORDER_PAID, ORDER_PAY_REQUESTED)


def parse_event(data: dict | str | bytes) -> OrderEvent:
    """
    Decode a wire payload into its typed event.

    Args:
        data: A dict or a JSON document carrying an ``event_type`` tag.

    Returns:
        The matching event variant.

    Raises:
        pydantic.ValidationError: If the tag is unknown or the payload is malformed.
    """
    if isinstance(data, str | bytes):
        return _event_adapter.validate_json(data)
    return _event_adapter.validate_python(data)
