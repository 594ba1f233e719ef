"""
Restaurant models - menu catalog, server-held carts, and orders.

Orders are the system of record for kitchen and payment state. They are never
deleted: merged adhoc orders stay behind with merged=True as an audit trail.
"""

import uuid
from decimal import Decimal

from django.db import models

from apps.web.core.models import TimestampedModel
from apps.web.restaurant.managers import OrderQuerySet


class MenuItem(TimestampedModel):
    """
    Catalog entry customers can order.

    Prices here are live; orders snapshot them at placement time.
    """

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=100, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    image_url = models.URLField(blank=True)

    # Availability (86'd when False)
    is_available = models.BooleanField(
        default=True,
        help_text="False = 86'd (unavailable)",
    )
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["display_order", "name"]
        indexes = [
            models.Index(fields=["is_available"]),
        ]

    def __str__(self) -> str:
        return self.name


class Cart(TimestampedModel):
    """
    Server-held cart for one owner.

    ``items`` maps menu item id (as string) to quantity.
    """

    owner_ref = models.CharField(max_length=100, unique=True)
    items = models.JSONField(default=dict, blank=True)

    def __str__(self) -> str:
        return f"Cart for {self.owner_ref}"


class OrderKind(models.TextChoices):
    """How an order takes part in billing."""

    SINGLE = "single", "Single"
    ADHOC = "adhoc", "Adhoc"
    FINAL = "final", "Final"


class KitchenStatus(models.TextChoices):
    """Kitchen progress."""

    PENDING = "pending", "Pending"
    PREPARING = "preparing", "Preparing"
    READY = "ready", "Ready"
    SERVED = "served", "Served"
    CANCELLED = "cancelled", "Cancelled"


class PaymentStatus(models.TextChoices):
    """Payment state."""

    UNPAID = "unpaid", "Unpaid"
    PAID = "paid", "Paid"


class Order(TimestampedModel):
    """
    Dine-in order tied to a table and, for adhoc orders, a dining session.

    Kitchen status and payment status are independent axes.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    owner_ref = models.CharField(
        max_length=100,
        help_text="User id, or guest:<token> for guest orders",
    )
    session_ref = models.CharField(
        max_length=100,
        blank=True,
        help_text="Dining session grouping adhoc orders",
    )
    customer_name = models.CharField(max_length=200, blank=True)
    table_number = models.PositiveIntegerField()
    order_kind = models.CharField(
        max_length=10,
        choices=OrderKind.choices,
        default=OrderKind.SINGLE,
    )
    notes = models.TextField(blank=True)

    # Pricing (snapshotted, never recomputed from the catalog)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    merged_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Combined amount of the merged adhoc orders (final orders only)",
    )

    # Payment
    payment_status = models.CharField(
        max_length=10,
        choices=PaymentStatus.choices,
        default=PaymentStatus.UNPAID,
    )
    payment_requested = models.BooleanField(
        default=False,
        help_text="Customer asked staff to collect payment",
    )
    paid_at = models.DateTimeField(null=True, blank=True)

    # Kitchen
    kitchen_status = models.CharField(
        max_length=20,
        choices=KitchenStatus.choices,
        default=KitchenStatus.PENDING,
    )

    # Session merge
    merged = models.BooleanField(
        default=False,
        help_text="Adhoc order folded into a final order",
    )

    objects = OrderQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["owner_ref", "payment_status"]),
            models.Index(fields=["session_ref", "order_kind", "merged"]),
            models.Index(fields=["kitchen_status"]),
        ]

    def __str__(self) -> str:
        return f"Order {str(self.pk)[:8]} - table {self.table_number}"

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID


class OrderItem(models.Model):
    """
    Line item in an order.

    Stores a snapshot of the item name and price at order time. ``item_ref`` is
    blank for synthetic lines that never came from the catalog.
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.PROTECT,
        related_name="items",
    )
    position = models.PositiveIntegerField(default=0)

    # Snapshot of item at order time
    item_ref = models.CharField(max_length=100, blank=True)
    item_name = models.CharField(max_length=200)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1)

    line_total = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="unit_price * quantity",
    )

    class Meta:
        ordering = ["position", "pk"]

    def __str__(self) -> str:
        return f"{self.quantity}x {self.item_name}"
