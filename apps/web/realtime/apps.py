"""Django app configuration for realtime order events."""

from django.apps import AppConfig, apps
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from apps.web.realtime.broadcaster import EventBroadcaster
from apps.web.realtime.channels import EventChannel, get_channel


class RealtimeConfig(AppConfig):
    """
    Realtime app configuration.

    Owns the process's event channel. Components that publish or subscribe
    receive it from here rather than importing a module-level instance.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.web.realtime"
    verbose_name = "Realtime"

    channel: EventChannel | None = None

    def ready(self) -> None:
        self.channel = self.build_channel()

    @staticmethod
    def build_channel() -> EventChannel:
        backend = settings.ORDER_EVENTS_BACKEND
        if backend == "redis":
            return get_channel(
                backend,
                url=settings.ORDER_EVENTS_REDIS_URL,
                channel_name=settings.ORDER_EVENTS_CHANNEL,
            )
        return get_channel(backend)


def get_event_channel() -> EventChannel:
    """Return the channel owned by the realtime app."""
    config = apps.get_app_config("realtime")
    if not isinstance(config, RealtimeConfig):
        raise ImproperlyConfigured("The realtime app must use RealtimeConfig")
    if config.channel is None:
        config.channel = config.build_channel()
    return config.channel


def get_broadcaster() -> EventBroadcaster:
    return EventBroadcaster(get_event_channel())
