"""
URL routing for realtime order events.
"""

from django.urls import path

from apps.web.realtime import views

app_name = "realtime"

urlpatterns = [
    path("stream", views.event_stream, name="event_stream"),
]
