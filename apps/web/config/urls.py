"""
URL configuration for Tableside.
"""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    # Public API endpoints
    path("api/", include("apps.web.restaurant.urls")),
    path("api/events/", include("apps.web.realtime.urls")),
    path("api/payments/", include("apps.web.payments.urls")),
]
