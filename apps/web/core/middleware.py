"""
Owner middleware - attaches the ordering actor to the request.
"""

from collections.abc import Callable

from django.conf import settings
from django.http import HttpRequest, HttpResponse

GUEST_HEADER = "X-Guest-Session"
GUEST_PREFIX = "guest:"
MAX_GUEST_TOKEN_LENGTH = 64


class OwnerMiddleware:
    """
    Middleware that attaches the current order owner to the request.

    Owner is determined by (in order):
    1. Authenticated user (owner_ref = user primary key)
    2. X-Guest-Session header, only when ORDERING_ALLOW_GUESTS is on

    Sets request.owner_ref, or None when the caller cannot own orders.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        # Skip for admin
        if request.path.startswith("/admin/"):
            return self.get_response(request)

        request.owner_ref = self._get_owner_ref(request)  # type: ignore[attr-defined]
        return self.get_response(request)

    def _get_owner_ref(self, request: HttpRequest) -> str | None:
        """Resolve the owner reference from the request."""
        user = getattr(request, "user", None)
        if user is not None and user.is_authenticated:
            return str(user.pk)

        if not getattr(settings, "ORDERING_ALLOW_GUESTS", False):
            return None

        token = request.headers.get(GUEST_HEADER, "").strip()
        if not token or len(token) > MAX_GUEST_TOKEN_LENGTH:
            return None
        return f"{GUEST_PREFIX}{token}"
