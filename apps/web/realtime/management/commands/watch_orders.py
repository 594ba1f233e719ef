"""
Follow live order events in the terminal (kitchen display).

Every event triggers a full re-fetch of today's orders, which are printed as
a table. Needs ORDER_EVENTS_BACKEND=redis to see orders placed by the web
workers.

Usage:
    uv run python apps/web/manage.py watch_orders
    uv run python apps/web/manage.py watch_orders --once
    uv run python apps/web/manage.py watch_orders --status pending
    uv run python apps/web/manage.py watch_orders --base-url http://localhost:8000 \\
        --cookie "sessionid=..."
"""

import logging
import threading
import time
from typing import Any

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from tableside_schemas import OrderSnapshot

from apps.web.realtime.apps import get_event_channel
from apps.web.realtime.exceptions import TransportError
from apps.web.realtime.observers import HttpOrderFetcher, OrderObserver
from apps.web.restaurant.services import list_orders, to_snapshot

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Follow live order events and print the kitchen's order list"

    def add_arguments(self, parser: Any) -> None:
        parser.add_argument(
            "--once",
            action="store_true",
            help="Print the current orders and exit",
        )
        parser.add_argument(
            "--status",
            default="",
            help="Only show orders with this kitchen status",
        )
        parser.add_argument(
            "--base-url",
            default="",
            help="Fetch through the HTTP API instead of the database",
        )
        parser.add_argument(
            "--cookie",
            default="",
            help="Cookie header for --base-url (a staff session)",
        )
        parser.add_argument(
            "--retry-interval",
            type=int,
            default=5,
            help="Seconds to wait before reconnecting (default: 5)",
        )

    def handle(self, *_args: Any, **options: Any) -> None:
        self.status = options["status"]
        fetcher = None
        if options["base_url"]:
            params = {"from": timezone.localdate().isoformat()}
            if self.status:
                params["status"] = self.status
            headers = {"Cookie": options["cookie"]} if options["cookie"] else None
            fetcher = HttpOrderFetcher(options["base_url"], params=params, headers=headers)
            fetch = fetcher
        else:
            fetch = self.fetch_today

        observer = OrderObserver(fetch, on_change=self.render)

        try:
            if options["once"]:
                if not observer.connect():
                    raise CommandError("Could not fetch orders")
                return
            self.follow(observer, options["retry_interval"])
        finally:
            if fetcher is not None:
                fetcher.close()

    def fetch_today(self) -> list[OrderSnapshot]:
        today = timezone.localdate()
        orders = list_orders(
            date_from=today, date_to=today, kitchen_status=self.status or None
        )
        return [to_snapshot(o) for o in orders]

    def follow(self, observer: OrderObserver, retry_interval: int) -> None:
        """Follow the channel, reconnecting after transport failures."""
        stop = threading.Event()
        self.stdout.write("Watching orders (Ctrl+C to stop)...")
        connected = False
        while not stop.is_set():
            try:
                subscription = get_event_channel().subscribe()
                if connected:
                    observer.reconnect()
                else:
                    observer.connect()
                    connected = True
                observer.follow(subscription, stop=stop)
                return
            except TransportError as e:
                logger.warning("Event channel failed: %s", e.message)
                self.stderr.write(f"Connection lost, retrying in {retry_interval}s")
                time.sleep(retry_interval)
            except KeyboardInterrupt:
                stop.set()

    def render(self, orders: list[OrderSnapshot]) -> None:
        self.stdout.write("")
        self.stdout.write(f"{timezone.localtime():%H:%M:%S}  {len(orders)} order(s)")
        for order in orders:
            flags = []
            if order.payment_requested:
                flags.append("PAY")
            if order.merged:
                flags.append("merged")
            self.stdout.write(
                f"  {order.id[:8]}  table {order.table_number:>3}  "
                f"{order.order_kind.value:<6}  {order.kitchen_status.value:<9}  "
                f"{order.payment_status.value:<6}  {order.amount:>8}  {' '.join(flags)}"
            )
