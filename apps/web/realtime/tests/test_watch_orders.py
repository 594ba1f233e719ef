"""Tests for the watch_orders management command."""

from io import StringIO

from django.core.management import CommandError, call_command

import httpx
import pytest
import respx

from apps.web.restaurant.models import KitchenStatus
from apps.web.restaurant.tests.factories import OrderFactory


@pytest.mark.django_db
class TestWatchOrdersOnce:
    """Tests for printing the current order list."""

    def test_prints_todays_orders(self):
        order = OrderFactory(table_number=12, payment_requested=True)
        out = StringIO()

        call_command("watch_orders", "--once", stdout=out)

        output = out.getvalue()
        assert "1 order(s)" in output
        assert str(order.pk)[:8] in output
        assert "table  12" in output
        assert "PAY" in output

    def test_status_filter(self):
        OrderFactory(kitchen_status=KitchenStatus.READY, table_number=5)
        OrderFactory(kitchen_status=KitchenStatus.PENDING, table_number=6)
        out = StringIO()

        call_command("watch_orders", "--once", "--status", "ready", stdout=out)

        output = out.getvalue()
        assert "1 order(s)" in output
        assert "table   5" in output
        assert "table   6" not in output

    @respx.mock
    def test_http_fetch_failure(self):
        respx.get("http://kitchen.test/api/orders/list").mock(
            return_value=httpx.Response(500)
        )

        with pytest.raises(CommandError, match="Could not fetch orders"):
            call_command(
                "watch_orders",
                "--once",
                "--base-url",
                "http://kitchen.test",
                stdout=StringIO(),
            )
