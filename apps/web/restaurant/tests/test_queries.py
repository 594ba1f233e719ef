"""
Tests for order queries and snapshots.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal

from django.utils import timezone

import pytest

from apps.web.restaurant.exceptions import NotFoundError
from apps.web.restaurant.managers import day_bounds
from apps.web.restaurant.models import KitchenStatus, Order, OrderKind, PaymentStatus
from apps.web.restaurant.services import (
    get_order,
    list_orders,
    list_outstanding,
    list_owner_orders,
    to_snapshot,
)
from apps.web.restaurant.tests.factories import (
    AdhocOrderFactory,
    OrderFactory,
    OrderItemFactory,
)


def created_at(order: Order, value: datetime) -> Order:
    """Backdate an order; created_at is set automatically on insert."""
    Order.objects.filter(pk=order.pk).update(created_at=timezone.make_aware(value))
    order.refresh_from_db()
    return order


class TestDayBounds:
    """Tests for calendar-day bounds."""

    def test_both_days_inclusive(self, settings):
        settings.TIME_ZONE = "UTC"
        start, end = day_bounds(date(2024, 1, 5), date(2024, 1, 5))

        assert start == timezone.make_aware(datetime(2024, 1, 5))
        assert end == timezone.make_aware(datetime(2024, 1, 6))

    def test_open_ended(self):
        assert day_bounds(None, None) == (None, None)


@pytest.mark.django_db
class TestListOrders:
    """Tests for the staff order list."""

    def test_date_range_includes_last_millisecond_of_day(self):
        """23:59:59.999 on the `to` day is in, midnight after is out."""
        late = created_at(OrderFactory(), datetime(2024, 1, 5, 23, 59, 59, 999000))
        created_at(OrderFactory(), datetime(2024, 1, 6, 0, 0, 0))
        early = created_at(OrderFactory(), datetime(2024, 1, 5, 0, 0, 0))
        created_at(OrderFactory(), datetime(2024, 1, 4, 23, 59, 59, 999000))

        orders = list_orders(date_from=date(2024, 1, 5), date_to=date(2024, 1, 5))

        assert {o.pk for o in orders} == {late.pk, early.pk}

    def test_newest_first(self):
        older = created_at(OrderFactory(), datetime(2024, 1, 5, 12, 0))
        newer = created_at(OrderFactory(), datetime(2024, 1, 5, 13, 0))

        assert [o.pk for o in list_orders()] == [newer.pk, older.pk]

    def test_status_kind_and_payment_filters(self):
        ready = OrderFactory(kitchen_status=KitchenStatus.READY)
        OrderFactory(kitchen_status=KitchenStatus.PENDING)
        paid = OrderFactory(payment_status=PaymentStatus.PAID)
        adhoc = AdhocOrderFactory()

        assert [o.pk for o in list_orders(kitchen_status="ready")] == [ready.pk]
        assert [o.pk for o in list_orders(payment_status="paid")] == [paid.pk]
        assert [o.pk for o in list_orders(order_kind=OrderKind.ADHOC)] == [adhoc.pk]


@pytest.mark.django_db
class TestOwnerQueries:
    """Tests for the customer-facing queries."""

    def test_owner_orders_only_their_own(self):
        mine = OrderFactory(owner_ref="7")
        OrderFactory(owner_ref="8")

        assert [o.pk for o in list_owner_orders("7")] == [mine.pk]

    def test_owner_orders_date_range(self):
        inside = created_at(OrderFactory(owner_ref="7"), datetime(2024, 3, 1, 20, 0))
        created_at(OrderFactory(owner_ref="7"), datetime(2024, 3, 2, 0, 0))

        orders = list_owner_orders("7", date_to=date(2024, 3, 1))

        assert [o.pk for o in orders] == [inside.pk]

    def test_outstanding_is_the_current_bill(self):
        first = created_at(
            OrderFactory(owner_ref="7", amount=Decimal("12.00")), datetime(2024, 3, 1, 19, 0)
        )
        second = created_at(
            OrderFactory(owner_ref="7", amount=Decimal("8.50")), datetime(2024, 3, 1, 19, 30)
        )
        OrderFactory(owner_ref="7", payment_status=PaymentStatus.PAID)
        AdhocOrderFactory(owner_ref="7", merged=True)

        orders, total = list_outstanding("7")

        assert [o.pk for o in orders] == [first.pk, second.pk]
        assert total == Decimal("20.50")

    def test_outstanding_empty(self):
        assert list_outstanding("nobody") == ([], Decimal("0.00"))


@pytest.mark.django_db
class TestGetOrder:
    """Tests for fetching one order."""

    def test_get_order(self):
        order = OrderFactory()
        assert get_order(str(order.pk)) == order

    def test_unknown_or_malformed_id(self):
        with pytest.raises(NotFoundError):
            get_order(uuid.uuid4())
        with pytest.raises(NotFoundError):
            get_order("12")

    def test_someone_elses_order_is_not_found(self):
        order = OrderFactory(owner_ref="7")

        with pytest.raises(NotFoundError):
            get_order(order.pk, owner_ref="8")
        assert get_order(order.pk, owner_ref="7") == order


@pytest.mark.django_db
class TestSnapshot:
    """Tests for the order snapshot."""

    def test_snapshot_carries_items_and_state(self):
        order = OrderFactory(table_number=12, notes="No onions")
        OrderItemFactory(order=order, item_ref="3", item_name="Soup", quantity=2)

        snapshot = to_snapshot(order)

        assert snapshot.id == str(order.pk)
        assert snapshot.table_number == 12
        assert snapshot.notes == "No onions"
        assert snapshot.kitchen_status == "pending"
        assert snapshot.payment_status == "unpaid"
        assert [(i.item_ref, i.name, i.quantity) for i in snapshot.items] == [
            ("3", "Soup", 2)
        ]
