"""
Order observers - keep a client view of orders reconciled with the server.

Events only say that something changed. An observer answers every event, and
every (re)connect, by re-fetching its whole view from the query surface, so a
missed or reordered event is repaired on the next one.
"""

import logging
import threading
from collections.abc import Callable
from typing import Any

import httpx
from tableside_schemas import OrderEvent, OrderSnapshot

from apps.web.realtime.channels import Subscription
from apps.web.realtime.exceptions import FetchError, SubscriptionClosedError

logger = logging.getLogger(__name__)

OrderFetch = Callable[[], list[OrderSnapshot]]


class OrderObserver:
    """
    A client's reconciled list of orders.

    Args:
        fetch: Returns the authoritative order list for this client.
        on_change: Called with the new list after each successful fetch.
    """

    def __init__(
        self,
        fetch: OrderFetch,
        on_change: Callable[[list[OrderSnapshot]], None] | None = None,
    ) -> None:
        self._fetch = fetch
        self._on_change = on_change
        self.orders: list[OrderSnapshot] = []
        self.connected = False
        self.fetch_count = 0
        self.last_event: OrderEvent | None = None

    def refresh(self) -> bool:
        """
        Replace the view with a fresh fetch.

        Returns:
            False if the fetch failed; the previous view is kept and the next
            event or reconnect retries.
        """
        try:
            orders = self._fetch()
        except FetchError as e:
            logger.warning("Order re-fetch failed, keeping stale view: %s", e.message)
            return False

        self.fetch_count += 1
        self.orders = orders
        if self._on_change is not None:
            self._on_change(orders)
        return True

    def connect(self) -> bool:
        """Start observing; runs the initial reconciliation fetch."""
        self.connected = True
        return self.refresh()

    def disconnect(self) -> None:
        self.connected = False

    def reconnect(self) -> bool:
        """Re-establish the connection and catch up on anything missed."""
        self.disconnect()
        return self.connect()

    def handle_event(self, event: OrderEvent) -> bool:
        """
        React to a lifecycle event by re-fetching.

        The payload is never applied to the view. Events arriving while
        disconnected are ignored; reconnect() covers them.
        """
        if not self.connected:
            return False
        self.last_event = event
        logger.debug("Received %s, re-fetching orders", event.event_type)
        return self.refresh()

    def follow(
        self,
        subscription: Subscription,
        stop: threading.Event | None = None,
        poll_timeout: float = 1.0,
    ) -> None:
        """
        Drive the observer from a channel subscription until stopped.

        Returns when ``stop`` is set or the subscription closes. Transport
        errors propagate so the caller can reconnect.
        """
        if not self.connected:
            self.connect()
        try:
            while stop is None or not stop.is_set():
                try:
                    event = subscription.get(timeout=poll_timeout)
                except SubscriptionClosedError:
                    logger.info("Subscription closed, observer stopping")
                    return
                if event is not None:
                    self.handle_event(event)
        finally:
            subscription.close()


class HttpOrderFetcher:
    """
    Fetches authoritative orders from the HTTP query surface.

    Staff observers read the admin list, diners their own orders.
    """

    ADMIN_PATH = "/api/orders/list"
    OWNER_PATH = "/api/orders/mine"

    def __init__(
        self,
        base_url: str,
        scope: str = "admin",
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        if scope not in ("admin", "owner"):
            raise ValueError(f"Unsupported fetch scope: {scope}")
        self.url = base_url.rstrip("/") + (
            self.ADMIN_PATH if scope == "admin" else self.OWNER_PATH
        )
        self.params = params or {}
        self._client = http_client or httpx.Client(timeout=10.0, headers=headers)
        self._owns_client = http_client is None

    def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client:
            self._client.close()

    def __call__(self) -> list[OrderSnapshot]:
        try:
            response = self._client.get(self.url, params=self.params)
        except httpx.HTTPError as e:
            raise FetchError(f"Request to {self.url} failed: {e}") from e

        if response.status_code != 200:
            raise FetchError(
                f"Order query returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data: dict[str, Any] = response.json()
            return [OrderSnapshot.model_validate(o) for o in data["orders"]]
        except (ValueError, KeyError, TypeError) as e:
            raise FetchError(f"Unexpected order query response: {e}") from e
