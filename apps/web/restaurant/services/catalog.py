"""
Catalog and server-held cart collaborators.

The lifecycle engine only needs two things from these: item prices to
snapshot at order time, and the owner's server cart as a fallback item source.
"""

import logging
from collections.abc import Iterable

from django.db import transaction

from tableside_schemas import CatalogItem

from apps.web.restaurant.models import Cart, MenuItem

logger = logging.getLogger(__name__)


def _as_pk(item_ref: str) -> int | None:
    try:
        return int(item_ref)
    except (TypeError, ValueError):
        return None


def resolve_items(item_refs: Iterable[str]) -> list[CatalogItem]:
    """
    Look up available catalog items by reference.

    Unknown, malformed and 86'd references are left out of the result.
    """
    pks = {pk for pk in (_as_pk(ref) for ref in item_refs) if pk is not None}
    if not pks:
        return []
    items = MenuItem.objects.filter(pk__in=pks, is_available=True)
    return [
        CatalogItem(item_ref=str(item.pk), name=item.name, unit_price=item.price)
        for item in items
    ]


def read_cart(owner_ref: str) -> dict[str, int]:
    """Return the owner's server cart as item_ref -> quantity."""
    cart = Cart.objects.filter(owner_ref=owner_ref).first()
    if cart is None or not isinstance(cart.items, dict):
        return {}
    return {str(ref): int(qty) for ref, qty in cart.items.items()}


def clear_cart(owner_ref: str) -> None:
    Cart.objects.filter(owner_ref=owner_ref).update(items={})


def add_to_cart(owner_ref: str, item_ref: str, quantity: int = 1) -> dict[str, int]:
    """Increment an item in the owner's cart and return the new cart."""
    with transaction.atomic():
        cart, _ = Cart.objects.select_for_update().get_or_create(owner_ref=owner_ref)
        items = dict(cart.items or {})
        items[item_ref] = int(items.get(item_ref, 0)) + quantity
        cart.items = items
        cart.save(update_fields=["items", "updated_at"])
    return items


def remove_from_cart(owner_ref: str, item_ref: str) -> dict[str, int]:
    """Decrement an item in the owner's cart, dropping it at zero."""
    with transaction.atomic():
        cart = Cart.objects.select_for_update().filter(owner_ref=owner_ref).first()
        if cart is None:
            return {}
        items = dict(cart.items or {})
        if item_ref in items:
            items[item_ref] = int(items[item_ref]) - 1
            if items[item_ref] <= 0:
                del items[item_ref]
        cart.items = items
        cart.save(update_fields=["items", "updated_at"])
    return items
