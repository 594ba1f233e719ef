"""
Ordering API views - menu, cart, order commands and order queries.

Every response is a JSON envelope with a ``success`` flag. Commands delegate to
the lifecycle engine; rejected commands come back as
``{"success": false, "message": ...}`` with the matching status code.
"""

import json
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from django.db import DatabaseError
from django.http import HttpRequest, JsonResponse
from django.views.decorators.cache import cache_control
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from apps.web.core.decorators import (
    idempotency_key_required,
    owner_required,
    staff_required,
)
from apps.web.payments.services import (
    PaymentError,
    create_payment_intent,
    paid_order_ids,
)
from apps.web.restaurant.exceptions import NoUnpaidOrdersError, OrderingError
from apps.web.restaurant.models import MenuItem
from apps.web.restaurant.serializers import (
    CartItemRequest,
    CartResponse,
    CheckoutResponse,
    CommandResponse,
    MarkPaidRequest,
    MenuItemSchema,
    MenuResponse,
    MergeSessionRequest,
    OrderDetailResponse,
    OrderListParams,
    OrderListResponse,
    PlaceOrderRequest,
    RequestPaymentRequest,
    UpdateStatusRequest,
    ValidationErrorDetail,
    ValidationErrorResponse,
    VerifyPaymentRequest,
)
from apps.web.restaurant.services import (
    CommandResult,
    catalog,
    get_lifecycle,
    get_order,
    list_orders,
    list_outstanding,
    list_owner_orders,
    to_snapshot,
)

logger = logging.getLogger(__name__)

_Schema = TypeVar("_Schema", bound=BaseModel)


class _BadRequest(Exception):
    """Request body or query string failed validation."""

    def __init__(self, response: JsonResponse) -> None:
        super().__init__("bad request")
        self.response = response


def _cors_headers() -> dict[str, str]:
    """CORS headers for the diner and kitchen frontends."""
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Idempotency-Key, X-Guest-Session",
    }


def _json_response(data: dict[str, Any], status: int = 200) -> JsonResponse:
    """Create a JSON response with CORS headers."""
    response = JsonResponse(data, status=status)
    for key, value in _cors_headers().items():
        response[key] = value
    return response


def _error_response(message: str, status: int) -> JsonResponse:
    return _json_response({"success": False, "message": message}, status=status)


def _validation_error(e: PydanticValidationError) -> JsonResponse:
    errors = [
        ValidationErrorDetail(
            field=".".join(str(loc) for loc in err["loc"]),
            message=err["msg"],
        )
        for err in e.errors()
    ]
    response = ValidationErrorResponse(details=errors)
    return _json_response(response.model_dump(), status=400)


def _parse_body(request: HttpRequest, schema: type[_Schema]) -> _Schema:
    try:
        body = json.loads(request.body or b"{}")
    except json.JSONDecodeError as exc:
        raise _BadRequest(_error_response("Invalid JSON in request body", 400)) from exc
    try:
        return schema.model_validate(body)
    except PydanticValidationError as e:
        raise _BadRequest(_validation_error(e)) from e


def _parse_query(request: HttpRequest, schema: type[_Schema]) -> _Schema:
    try:
        return schema.model_validate(request.GET.dict())
    except PydanticValidationError as e:
        raise _BadRequest(_validation_error(e)) from e


def _command_response(result: CommandResult, status: int = 200) -> JsonResponse:
    response = CommandResponse(
        message=result.message,
        orders=[to_snapshot(order) for order in result.orders],
        total=result.total,
        missing_ids=result.missing_ids,
    )
    return _json_response(response.model_dump(mode="json"), status=status)


def _handles_errors(view_func: Callable[..., JsonResponse]) -> Callable[..., JsonResponse]:
    """Translate rejected commands and store failures into JSON envelopes."""

    @wraps(view_func)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> JsonResponse:
        try:
            return view_func(request, *args, **kwargs)
        except _BadRequest as e:
            return e.response
        except OrderingError as e:
            logger.info("Rejected %s: %s", request.path, e.message)
            return _error_response(e.message, status=e.status_code)
        except DatabaseError:
            logger.exception("Store failure handling %s", request.path)
            return _error_response("Server error", status=500)

    return wrapper


def options_handler(_request: HttpRequest, *_args: Any, **_kwargs: Any) -> JsonResponse:
    """
    OPTIONS handler for CORS preflight requests.
    """
    return _json_response({})


# =============================================================================
# Menu and Cart
# =============================================================================


@require_GET
@cache_control(max_age=30, public=True)  # 30 seconds
def menu(_request: HttpRequest) -> JsonResponse:
    """
    GET /api/menu

    Returns every available catalog item.
    """
    items = MenuItem.objects.filter(is_available=True)
    response = MenuResponse(items=[MenuItemSchema.model_validate(item) for item in items])
    return _json_response(response.model_dump(mode="json"))


@require_GET
@owner_required
def cart_detail(request: HttpRequest) -> JsonResponse:
    """GET /api/cart"""
    return _json_response(CartResponse(items=catalog.read_cart(request.owner_ref)).model_dump())


@csrf_exempt
@require_POST
@owner_required
@_handles_errors
def cart_add(request: HttpRequest) -> JsonResponse:
    """
    POST /api/cart/add

    Adds an available catalog item to the owner's server cart.
    """
    body = _parse_body(request, CartItemRequest)
    if not catalog.resolve_items([body.item_ref]):
        return _error_response(f"Item {body.item_ref} is not available", status=404)
    items = catalog.add_to_cart(request.owner_ref, body.item_ref, body.quantity)
    return _json_response(CartResponse(items=items).model_dump())


@csrf_exempt
@require_POST
@owner_required
@_handles_errors
def cart_remove(request: HttpRequest) -> JsonResponse:
    """POST /api/cart/remove"""
    body = _parse_body(request, CartItemRequest)
    items = catalog.remove_from_cart(request.owner_ref, body.item_ref)
    return _json_response(CartResponse(items=items).model_dump())


@csrf_exempt
@require_POST
@owner_required
@_handles_errors
def cart_clear(request: HttpRequest) -> JsonResponse:
    """POST /api/cart/clear"""
    catalog.clear_cart(request.owner_ref)
    return _json_response(CartResponse(items={}).model_dump())


# =============================================================================
# Order Commands
# =============================================================================


@csrf_exempt
@require_POST
@owner_required
@idempotency_key_required
@_handles_errors
def place_order(request: HttpRequest) -> JsonResponse:
    """
    POST /api/orders/place

    Place an order from the posted cart snapshot, or from the server cart when
    no items are posted.

    Request body: PlaceOrderRequest schema
    Response: CommandResponse (201) or error envelope
    """
    body = _parse_body(request, PlaceOrderRequest)
    result = get_lifecycle().place_order(
        request.owner_ref,
        body.table_number,
        [item.model_dump() for item in body.items],
        session_ref=body.session_ref,
        order_kind=body.order_kind,
        notes=body.notes,
        customer_name=body.customer_name,
    )
    return _command_response(result, status=201)


@csrf_exempt
@require_POST
@owner_required
@_handles_errors
def request_payment(request: HttpRequest) -> JsonResponse:
    """
    POST /api/orders/payrequest

    Flag the caller's unpaid orders (or the listed subset) for collection.
    """
    body = _parse_body(request, RequestPaymentRequest)
    result = get_lifecycle().request_payment(
        request.owner_ref,
        order_ids=body.order_ids or None,
        table_number=body.table_number,
    )
    return _command_response(result)


@csrf_exempt
@require_POST
@staff_required
@_handles_errors
def mark_paid(request: HttpRequest) -> JsonResponse:
    """
    POST /api/orders/markpaid

    Staff confirms payment by order ids, or for everything an owner has asked
    to pay.
    """
    body = _parse_body(request, MarkPaidRequest)
    result = get_lifecycle().mark_paid(
        order_ids=body.order_ids or None,
        owner_ref=body.owner_ref,
    )
    return _command_response(result)


@csrf_exempt
@require_POST
@staff_required
@_handles_errors
def update_status(request: HttpRequest) -> JsonResponse:
    """POST /api/orders/updatestatus"""
    body = _parse_body(request, UpdateStatusRequest)
    result = get_lifecycle().update_kitchen_status(
        body.order_id,
        status=body.status.value if body.status else None,
        payment_status=body.payment_status.value if body.payment_status else None,
    )
    return _command_response(result)


@csrf_exempt
@require_POST
@staff_required
@_handles_errors
def merge_session(request: HttpRequest) -> JsonResponse:
    """
    POST /api/orders/merge

    Fold a dining session's adhoc orders into one final bill.
    """
    body = _parse_body(request, MergeSessionRequest)
    result = get_lifecycle().merge_session(body.session_ref, pay_all=body.pay_all)
    return _command_response(result, status=201)


@csrf_exempt
@require_POST
@owner_required
@_handles_errors
def checkout(request: HttpRequest) -> JsonResponse:
    """
    POST /api/orders/checkout

    Start card payment for the caller's outstanding bill.

    Response: CheckoutResponse with the Stripe client secret
    """
    orders, total = list_outstanding(request.owner_ref)
    if not orders:
        raise NoUnpaidOrdersError()

    order_ids = [str(order.pk) for order in orders]
    try:
        intent = create_payment_intent(
            amount=total,
            order_ids=order_ids,
            metadata={"owner_ref": request.owner_ref},
        )
    except PaymentError as e:
        logger.warning("Checkout failed for %s: %s", request.owner_ref, e.message)
        return _error_response("Payment processing failed", status=502)

    response = CheckoutResponse(
        payment_intent_id=intent.id,
        client_secret=intent.client_secret,
        order_ids=order_ids,
        total=total,
    )
    return _json_response(response.model_dump(mode="json"))


@csrf_exempt
@require_POST
@owner_required
@_handles_errors
def verify_payment(request: HttpRequest) -> JsonResponse:
    """
    POST /api/orders/verify

    Confirm a card payment with Stripe and mark the orders it covers paid.
    """
    body = _parse_body(request, VerifyPaymentRequest)
    try:
        order_ids = paid_order_ids(body.payment_intent_id)
    except PaymentError as e:
        logger.info("Payment verification failed for %s: %s", body.payment_intent_id, e.message)
        return _error_response("Payment verification failed", status=400)

    result = get_lifecycle().mark_paid(order_ids=order_ids)
    return _command_response(result)


# =============================================================================
# Order Queries
# =============================================================================


@require_GET
@staff_required
@_handles_errors
def order_list(request: HttpRequest) -> JsonResponse:
    """
    GET /api/orders/list

    Staff view of all orders. Optional filters: from, to (YYYY-MM-DD, both
    inclusive), status, payment_status, kind.
    """
    params = _parse_query(request, OrderListParams)
    orders = list_orders(
        date_from=params.date_from,
        date_to=params.date_to,
        kitchen_status=params.status.value if params.status else None,
        payment_status=params.payment_status.value if params.payment_status else None,
        order_kind=params.kind,
    )
    response = OrderListResponse(orders=[to_snapshot(o) for o in orders])
    return _json_response(response.model_dump(mode="json"))


@require_GET
@owner_required
@_handles_errors
def my_orders(request: HttpRequest) -> JsonResponse:
    """GET /api/orders/mine"""
    params = _parse_query(request, OrderListParams)
    orders = list_owner_orders(request.owner_ref, params.date_from, params.date_to)
    response = OrderListResponse(orders=[to_snapshot(o) for o in orders])
    return _json_response(response.model_dump(mode="json"))


@require_GET
@owner_required
@_handles_errors
def outstanding(request: HttpRequest) -> JsonResponse:
    """
    GET /api/orders/outstanding

    The caller's current bill: unpaid, un-merged orders and their total.
    """
    orders, total = list_outstanding(request.owner_ref)
    response = OrderListResponse(orders=[to_snapshot(o) for o in orders], total=total)
    return _json_response(response.model_dump(mode="json"))


@require_GET
@_handles_errors
def order_detail(request: HttpRequest, order_id: str) -> JsonResponse:
    """
    GET /api/orders/{order_id}

    Staff can read any order; owners only their own.
    """
    if request.user.is_authenticated and request.user.is_staff:
        order = get_order(order_id)
    else:
        owner_ref = getattr(request, "owner_ref", None)
        if not owner_ref:
            return _error_response("Unauthorized", status=401)
        order = get_order(order_id, owner_ref=owner_ref)

    response = OrderDetailResponse(order=to_snapshot(order))
    return _json_response(response.model_dump(mode="json"))
