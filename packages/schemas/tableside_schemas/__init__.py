"""Tableside Schemas - Pydantic models for data contracts."""

from tableside_schemas.events import (
    EVENT_NAMES,
    ORDER_CREATED,
    ORDER_PAID,
    ORDER_PAY_REQUESTED,
    ORDER_UPDATED,
    OrderCreatedEvent,
    OrderEvent,
    OrderPaidEvent,
    OrderPayRequestedEvent,
    OrderUpdatedEvent,
    parse_event,
)
from tableside_schemas.orders import (
    CatalogItem,
    KitchenStatus,
    LineItemSnapshot,
    OrderKind,
    OrderSnapshot,
    PaymentStatus,
)

__all__ = [
    # Orders
    "CatalogItem",
    "KitchenStatus",
    "LineItemSnapshot",
    "OrderKind",
    "OrderSnapshot",
    "PaymentStatus",
    # Events
    "EVENT_NAMES",
    "ORDER_CREATED",
    "ORDER_PAID",
    "ORDER_PAY_REQUESTED",
    "ORDER_UPDATED",
    "OrderCreatedEvent",
    "OrderEvent",
    "OrderPaidEvent",
    "OrderPayRequestedEvent",
    "OrderUpdatedEvent",
    "parse_event",
]
