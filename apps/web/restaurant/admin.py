"""Admin registration for restaurant models.

Order state is read-only here. Staff change it through the actions, which run
the same lifecycle commands as the API so observers are notified.
"""

from django.contrib import admin, messages
from django.db.models import QuerySet
from django.http import HttpRequest

from apps.web.restaurant.exceptions import OrderingError
from apps.web.restaurant.models import Cart, KitchenStatus, MenuItem, Order, OrderItem
from apps.web.restaurant.services import get_lifecycle


class OrderItemInline(admin.TabularInline):
    """Inline for items within an order."""

    model = OrderItem
    extra = 0
    can_delete = False
    fields = ["item_ref", "item_name", "quantity", "unit_price", "line_total"]
    readonly_fields = fields


@admin.register(MenuItem)
class MenuItemAdmin(admin.ModelAdmin):
    """Admin for menu items."""

    list_display = ["name", "category", "price", "is_available", "display_order"]
    list_filter = ["is_available", "category"]
    list_editable = ["is_available", "display_order"]
    search_fields = ["name", "description"]
    readonly_fields = ["created_at", "updated_at"]


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    """Admin for server-held carts."""

    list_display = ["owner_ref", "updated_at"]
    search_fields = ["owner_ref"]
    readonly_fields = ["created_at", "updated_at"]


def _set_kitchen_status(
    request: HttpRequest, queryset: QuerySet[Order], status: str
) -> None:
    lifecycle = get_lifecycle()
    updated = 0
    for order in queryset:
        try:
            lifecycle.update_kitchen_status(order.pk, status=status)
        except OrderingError as e:
            messages.warning(request, f"{order}: {e.message}")
            continue
        updated += 1
    if updated:
        messages.success(request, f"{updated} order(s) set to {status}.")


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Admin for orders."""

    list_display = [
        "short_id",
        "table_number",
        "order_kind",
        "session_ref",
        "amount",
        "kitchen_status",
        "payment_status",
        "payment_requested",
        "merged",
        "created_at",
    ]
    list_filter = [
        "kitchen_status",
        "payment_status",
        "payment_requested",
        "order_kind",
        "merged",
    ]
    search_fields = ["id", "owner_ref", "session_ref", "customer_name"]
    inlines = [OrderItemInline]
    date_hierarchy = "created_at"
    actions = [
        "mark_paid",
        "start_preparing",
        "mark_ready",
        "mark_served",
        "cancel_orders",
    ]
    readonly_fields = [
        "id",
        "owner_ref",
        "session_ref",
        "table_number",
        "order_kind",
        "amount",
        "merged_amount",
        "payment_status",
        "payment_requested",
        "paid_at",
        "kitchen_status",
        "merged",
        "created_at",
        "updated_at",
    ]

    fieldsets = [
        (None, {"fields": ["id", "owner_ref", "customer_name", "notes"]}),
        (
            "Table",
            {"fields": ["table_number", "session_ref", "order_kind", "merged"]},
        ),
        ("Pricing", {"fields": ["amount", "merged_amount"]}),
        (
            "Status",
            {
                "fields": [
                    "kitchen_status",
                    "payment_status",
                    "payment_requested",
                    "paid_at",
                ]
            },
        ),
        ("Timestamps", {"fields": ["created_at", "updated_at"]}),
    ]

    @admin.display(description="Order")
    def short_id(self, obj: Order) -> str:
        return str(obj.pk)[:8]

    def has_delete_permission(self, request: HttpRequest, obj: Order | None = None) -> bool:
        return False

    @admin.action(description="Mark selected orders paid")
    def mark_paid(self, request: HttpRequest, queryset: QuerySet[Order]) -> None:
        order_ids = [str(pk) for pk in queryset.values_list("pk", flat=True)]
        if not order_ids:
            return
        result = get_lifecycle().mark_paid(order_ids=order_ids)
        messages.success(request, f"{len(result.orders)} order(s) marked paid.")

    @admin.action(description="Kitchen: start preparing")
    def start_preparing(self, request: HttpRequest, queryset: QuerySet[Order]) -> None:
        _set_kitchen_status(request, queryset, KitchenStatus.PREPARING)

    @admin.action(description="Kitchen: ready")
    def mark_ready(self, request: HttpRequest, queryset: QuerySet[Order]) -> None:
        _set_kitchen_status(request, queryset, KitchenStatus.READY)

    @admin.action(description="Kitchen: served")
    def mark_served(self, request: HttpRequest, queryset: QuerySet[Order]) -> None:
        _set_kitchen_status(request, queryset, KitchenStatus.SERVED)

    @admin.action(description="Kitchen: cancel")
    def cancel_orders(self, request: HttpRequest, queryset: QuerySet[Order]) -> None:
        _set_kitchen_status(request, queryset, KitchenStatus.CANCELLED)
