"""
URL routing for the ordering API.

Diner endpoints need an owner (logged-in user or guest session); kitchen
endpoints need a staff user.
"""

from django.urls import path

from apps.web.restaurant import views

app_name = "restaurant"

urlpatterns = [
    # Menu and cart
    path("menu", views.menu, name="menu"),
    path("cart", views.cart_detail, name="cart_detail"),
    path("cart/add", views.cart_add, name="cart_add"),
    path("cart/remove", views.cart_remove, name="cart_remove"),
    path("cart/clear", views.cart_clear, name="cart_clear"),
    # Order commands
    path("orders/place", views.place_order, name="order_place"),
    path("orders/payrequest", views.request_payment, name="order_payrequest"),
    path("orders/markpaid", views.mark_paid, name="order_markpaid"),
    path("orders/updatestatus", views.update_status, name="order_updatestatus"),
    path("orders/merge", views.merge_session, name="order_merge"),
    path("orders/checkout", views.checkout, name="order_checkout"),
    path("orders/verify", views.verify_payment, name="order_verify"),
    # Order queries
    path("orders/list", views.order_list, name="order_list"),
    path("orders/mine", views.my_orders, name="order_mine"),
    path("orders/outstanding", views.outstanding, name="order_outstanding"),
    path("orders/<str:order_id>", views.order_detail, name="order_detail"),
]
