"""
Tests for restaurant models.
"""

from decimal import Decimal

from django.db.models import ProtectedError

import pytest

from apps.web.restaurant.models import (
    KitchenStatus,
    MenuItem,
    Order,
    OrderKind,
    PaymentStatus,
)
from apps.web.restaurant.tests.factories import (
    AdhocOrderFactory,
    MenuItemFactory,
    OrderFactory,
    OrderItemFactory,
)


@pytest.mark.django_db
class TestOrderModel:
    """Tests for the Order model."""

    def test_defaults(self):
        order = Order.objects.create(owner_ref="1", table_number=3, amount=Decimal("9.00"))

        assert order.order_kind == OrderKind.SINGLE
        assert order.payment_status == PaymentStatus.UNPAID
        assert order.kitchen_status == KitchenStatus.PENDING
        assert order.payment_requested is False
        assert order.merged is False
        assert order.merged_amount == Decimal("0.00")
        assert order.paid_at is None
        assert order.created_at is not None

    def test_ids_are_uuids(self):
        first, second = OrderFactory.create_batch(2)
        assert first.pk != second.pk
        assert len(str(first.pk)) == 36

    def test_is_paid(self):
        assert OrderFactory(payment_status=PaymentStatus.PAID).is_paid is True
        assert OrderFactory().is_paid is False

    def test_str(self):
        order = OrderFactory(table_number=5)
        assert str(order) == f"Order {str(order.pk)[:8]} - table 5"

    def test_orders_with_items_cannot_be_deleted(self):
        """Orders are an audit trail; their items protect them."""
        item = OrderItemFactory()
        with pytest.raises(ProtectedError):
            item.order.delete()


@pytest.mark.django_db
class TestOrderQuerySet:
    """Tests for the order queryset filters."""

    def test_billable_excludes_paid_merged_and_cancelled(self):
        open_order = OrderFactory(owner_ref="1")
        OrderFactory(owner_ref="1", payment_status=PaymentStatus.PAID)
        AdhocOrderFactory(owner_ref="1", merged=True)
        OrderFactory(owner_ref="1", kitchen_status=KitchenStatus.CANCELLED)

        assert list(Order.objects.for_owner("1").billable()) == [open_order]

    def test_awaiting_payment(self):
        requested = OrderFactory(payment_requested=True)
        OrderFactory()
        AdhocOrderFactory(payment_requested=True, merged=True)
        assert list(Order.objects.awaiting_payment()) == [requested]

    def test_mergeable(self):
        adhoc = AdhocOrderFactory(session_ref="s1")
        AdhocOrderFactory(session_ref="s1", merged=True)
        AdhocOrderFactory(session_ref="s2")
        AdhocOrderFactory(session_ref="s1", payment_status=PaymentStatus.PAID)
        OrderFactory(session_ref="s1", order_kind=OrderKind.FINAL)

        assert list(Order.objects.mergeable("s1")) == [adhoc]


@pytest.mark.django_db
class TestOrderItemModel:
    """Tests for the OrderItem model."""

    def test_items_keep_position_order(self):
        order = OrderFactory()
        second = OrderItemFactory(order=order, position=1)
        first = OrderItemFactory(order=order, position=0)

        assert list(order.items.all()) == [first, second]

    def test_str(self):
        item = OrderItemFactory(item_name="Soup", quantity=2)
        assert str(item) == "2x Soup"


@pytest.mark.django_db
class TestMenuItemModel:
    """Tests for the MenuItem model."""

    def test_ordering(self):
        later = MenuItemFactory(name="B", display_order=2)
        earlier = MenuItemFactory(name="A", display_order=1)

        assert list(MenuItem.objects.all()) == [earlier, later]
