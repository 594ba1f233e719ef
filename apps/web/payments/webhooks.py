"""
Stripe webhook handlers.

Handles payment events from Stripe:
- payment_intent.succeeded: Mark the covered orders paid
- payment_intent.payment_failed: Logged; orders stay unpaid
"""

import logging

from django.conf import settings
from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

import stripe

from apps.web.payments.services import order_ids_from_metadata
from apps.web.restaurant.exceptions import OrderingError
from apps.web.restaurant.services import get_lifecycle

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> HttpResponse:
    """
    Handle Stripe webhook events.

    POST /api/payments/webhooks/stripe
    """
    payload = request.body
    sig_header = request.headers.get("Stripe-Signature", "")

    # Verify webhook signature
    try:
        event = stripe.Webhook.construct_event(
            payload,
            sig_header,
            settings.STRIPE_WEBHOOK_SECRET,
        )
    except ValueError as e:
        logger.warning("Invalid Stripe webhook payload: %s", e)
        return HttpResponse("Invalid payload", status=400)
    except stripe.error.SignatureVerificationError as e:
        logger.warning("Invalid Stripe webhook signature: %s", e)
        return HttpResponse("Invalid signature", status=400)

    logger.info("Received Stripe event: %s", event["type"])

    match event["type"]:
        case "payment_intent.succeeded":
            _handle_payment_succeeded(event["data"]["object"])
        case "payment_intent.payment_failed":
            _handle_payment_failed(event["data"]["object"])
        case _:
            logger.debug("Ignoring unhandled Stripe event: %s", event["type"])

    return HttpResponse(status=200)


def _handle_payment_succeeded(payment_intent: dict[str, object]) -> None:
    """
    Mark the orders covered by a PaymentIntent as paid.

    Repeated deliveries are harmless: mark_paid leaves paid orders alone.
    """
    order_ids = order_ids_from_metadata(payment_intent.get("metadata"))
    if not order_ids:
        pi_id = payment_intent.get("id")
        logger.warning("Payment succeeded but no order ids in metadata: %s", pi_id)
        return

    try:
        result = get_lifecycle().mark_paid(order_ids=order_ids)
    except OrderingError as e:
        logger.error(
            "Could not mark orders paid for %s: %s",
            payment_intent.get("id"),
            e.message,
        )
        return

    logger.info(
        "Orders paid via webhook: intent=%s orders=%d missing=%d",
        payment_intent.get("id"),
        len(result.orders),
        len(result.missing_ids),
    )


def _handle_payment_failed(payment_intent: dict[str, object]) -> None:
    error = payment_intent.get("last_payment_error") or {}
    message = error.get("message", "") if isinstance(error, dict) else ""
    logger.warning(
        "Payment failed: intent=%s orders=%s reason=%s",
        payment_intent.get("id"),
        order_ids_from_metadata(payment_intent.get("metadata")),
        message,
    )
