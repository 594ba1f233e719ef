"""
Decorators for request handling and validation.
"""

import json
from collections.abc import Callable
from functools import wraps
from typing import Any

from django.core.cache import cache
from django.http import HttpRequest, JsonResponse

IDEMPOTENCY_TTL_SECONDS = 86400  # 24 hours


def owner_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator that rejects requests without an order owner.

    The owner comes from OwnerMiddleware (logged-in user, or guest session
    when guest ordering is enabled).
    """

    @wraps(view_func)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> Any:
        if not getattr(request, "owner_ref", None):
            return JsonResponse(
                {"success": False, "message": "Unauthorized"},
                status=401,
            )
        return view_func(request, *args, **kwargs)

    return wrapper


def staff_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator that restricts a JSON endpoint to kitchen/admin staff."""

    @wraps(view_func)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> Any:
        user = request.user
        if not user.is_authenticated:
            return JsonResponse(
                {"success": False, "message": "Unauthorized"},
                status=401,
            )
        if not user.is_staff:
            return JsonResponse(
                {"success": False, "message": "Staff access required"},
                status=403,
            )
        return view_func(request, *args, **kwargs)

    return wrapper


def idempotency_key_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator that requires an Idempotency-Key header for POST requests.

    If the same owner reuses a key, the cached response from the first request
    is returned and the view is not called again. Keys are scoped per owner so
    two diners cannot collide. Cached responses are stored for 24 hours.

    Usage:
        @idempotency_key_required
        def place_order(request):
            ...
    """

    @wraps(view_func)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> Any:
        key = request.headers.get("Idempotency-Key")

        if not key:
            return JsonResponse(
                {"success": False, "message": "Idempotency-Key header is required"},
                status=400,
            )

        owner_ref = getattr(request, "owner_ref", None) or "anonymous"
        cache_key = f"idempotency:{owner_ref}:{key}"
        cached = cache.get(cache_key)

        if cached:
            # Replay the first response
            return JsonResponse(
                cached["data"],
                status=cached["status"],
            )

        response = view_func(request, *args, **kwargs)

        # Only successful responses are replayed; failures may be retried
        if response.status_code < 400:
            cache.set(
                cache_key,
                {
                    "data": json.loads(response.content),
                    "status": response.status_code,
                },
                timeout=IDEMPOTENCY_TTL_SECONDS,
            )

        return response

    return wrapper
