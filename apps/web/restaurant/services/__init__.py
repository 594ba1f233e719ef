"""
Order services - the lifecycle engine, catalog/cart collaborators and queries.

Usage:
    from apps.web.restaurant.services import get_lifecycle

    result = get_lifecycle().place_order(owner_ref, table_number=4, items=[...])
"""

from apps.web.restaurant.services.lifecycle import (
    KITCHEN_TRANSITIONS,
    CommandResult,
    OrderLifecycle,
    aggregate_lines,
    can_transition,
    get_lifecycle,
)
from apps.web.restaurant.services.queries import (
    get_order,
    list_orders,
    list_outstanding,
    list_owner_orders,
    to_snapshot,
)

__all__ = [
    "KITCHEN_TRANSITIONS",
    "CommandResult",
    "OrderLifecycle",
    "aggregate_lines",
    "can_transition",
    "get_lifecycle",
    "get_order",
    "list_orders",
    "list_outstanding",
    "list_owner_orders",
    "to_snapshot",
]
