"""Django app configuration for menu, carts and the order lifecycle."""

from django.apps import AppConfig


class RestaurantConfig(AppConfig):
    """Ordering app: catalog, server carts, orders and their line items."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.web.restaurant"
    verbose_name = "Ordering"
