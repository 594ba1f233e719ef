"""
Read-only order queries and the order snapshot shape returned to clients.
"""

from datetime import date
from decimal import Decimal
from typing import Any

from tableside_schemas import LineItemSnapshot, OrderSnapshot

from apps.web.restaurant.exceptions import NotFoundError
from apps.web.restaurant.models import Order, OrderItem
from apps.web.restaurant.services.lifecycle import parse_order_ids


def to_snapshot(order: Order) -> OrderSnapshot:
    """Convert an order (with its items) to the wire snapshot."""
    items: list[OrderItem] = list(order.items.all())
    return OrderSnapshot(
        id=str(order.pk),
        owner_ref=order.owner_ref,
        session_ref=order.session_ref,
        customer_name=order.customer_name,
        table_number=order.table_number,
        order_kind=order.order_kind,
        notes=order.notes,
        items=[
            LineItemSnapshot(
                item_ref=item.item_ref,
                name=item.item_name,
                unit_price=item.unit_price,
                quantity=item.quantity,
            )
            for item in items
        ],
        amount=order.amount,
        merged_amount=order.merged_amount,
        payment_status=order.payment_status,
        payment_requested=order.payment_requested,
        paid_at=order.paid_at,
        kitchen_status=order.kitchen_status,
        merged=order.merged,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def list_orders(
    date_from: date | None = None,
    date_to: date | None = None,
    kitchen_status: str | None = None,
    payment_status: str | None = None,
    order_kind: str | None = None,
) -> list[Order]:
    """
    Staff view of all orders, newest first.

    Dates are calendar days in the current time zone, both inclusive.
    """
    qs = Order.objects.created_between(date_from, date_to)
    filters: dict[str, Any] = {}
    if kitchen_status:
        filters["kitchen_status"] = kitchen_status
    if payment_status:
        filters["payment_status"] = payment_status
    if order_kind:
        filters["order_kind"] = order_kind
    return list(qs.filter(**filters).prefetch_related("items").order_by("-created_at"))


def list_owner_orders(
    owner_ref: str,
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[Order]:
    """An owner's order history, newest first."""
    return list(
        Order.objects.for_owner(owner_ref)
        .created_between(date_from, date_to)
        .prefetch_related("items")
        .order_by("-created_at")
    )


def list_outstanding(owner_ref: str) -> tuple[list[Order], Decimal]:
    """
    The owner's current bill: billable orders oldest first, and their total.
    """
    orders = list(
        Order.objects.for_owner(owner_ref)
        .billable()
        .prefetch_related("items")
        .order_by("created_at")
    )
    total = sum((o.amount for o in orders), Decimal("0.00"))
    return orders, total


def get_order(order_id: Any, owner_ref: str | None = None) -> Order:
    """
    Fetch one order.

    When ``owner_ref`` is given, orders belonging to someone else are reported
    as not found.

    Raises:
        NotFoundError: If the order does not exist or is not visible.
    """
    valid, _invalid = parse_order_ids([order_id])
    if not valid:
        raise NotFoundError(str(order_id))
    qs = Order.objects.prefetch_related("items")
    if owner_ref is not None:
        qs = qs.for_owner(owner_ref)
    order = qs.filter(pk=valid[0]).first()
    if order is None:
        raise NotFoundError(str(order_id))
    return order
