"""
Pytest configuration for Django app tests.
"""

from collections.abc import Iterator

from django.apps import apps
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import Client as DjangoClient

import pytest
from tableside_schemas import OrderEvent

from apps.web.realtime.broadcaster import EventBroadcaster
from apps.web.realtime.channels import InMemoryEventChannel, Subscription
from apps.web.restaurant.services import OrderLifecycle

User = get_user_model()


@pytest.fixture(autouse=True)
def event_channel() -> Iterator[InMemoryEventChannel]:
    """Give every test a fresh in-process channel owned by the realtime app."""
    config = apps.get_app_config("realtime")
    previous = config.channel
    channel = InMemoryEventChannel()
    config.channel = channel
    yield channel
    channel.close()
    config.channel = previous


@pytest.fixture(autouse=True)
def _clear_cache() -> Iterator[None]:
    """Idempotency keys live in the cache; keep tests isolated."""
    cache.clear()
    yield
    cache.clear()


class EventRecorder:
    """Reads everything published on the test channel so far."""

    def __init__(self, subscription: Subscription) -> None:
        self.subscription = subscription

    def drain(self) -> list[OrderEvent]:
        drained: list[OrderEvent] = []
        while (event := self.subscription.get(timeout=0)) is not None:
            drained.append(event)
        return drained


@pytest.fixture
def events(event_channel: InMemoryEventChannel) -> Iterator[EventRecorder]:
    """Record every event published during a test."""
    subscription = event_channel.subscribe()
    yield EventRecorder(subscription)
    subscription.close()


@pytest.fixture
def lifecycle(event_channel: InMemoryEventChannel) -> OrderLifecycle:
    """Lifecycle engine publishing to the test channel."""
    return OrderLifecycle(EventBroadcaster(event_channel))


@pytest.fixture
def user(db) -> User:
    """Create a diner account."""
    return User.objects.create_user(
        username="diner",
        email="diner@example.com",
        password="testpass123",
    )


@pytest.fixture
def staff_user(db) -> User:
    """Create a kitchen staff account."""
    return User.objects.create_user(
        username="kitchen",
        email="kitchen@example.com",
        password="testpass123",
        is_staff=True,
    )


@pytest.fixture
def api_client() -> DjangoClient:
    """Django test client for API requests."""
    return DjangoClient()


@pytest.fixture
def diner_client(user) -> DjangoClient:
    """Test client logged in as the diner."""
    http_client = DjangoClient()
    http_client.force_login(user)
    return http_client


@pytest.fixture
def staff_client(staff_user) -> DjangoClient:
    """Test client logged in as kitchen staff."""
    http_client = DjangoClient()
    http_client.force_login(staff_user)
    return http_client
