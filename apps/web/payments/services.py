"""
Payment services - Stripe integration.

Diners settle their outstanding bill with a PaymentIntent whose metadata lists
the order ids it covers. Verification reads those ids back from Stripe, never
from the caller.
"""

import logging
from decimal import Decimal
from typing import Any

from django.conf import settings

import stripe

logger = logging.getLogger(__name__)

ORDER_IDS_METADATA_KEY = "order_ids"


class PaymentError(Exception):
    """Error during payment processing."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


def _configure() -> None:
    stripe.api_key = settings.STRIPE_SECRET_KEY


def to_cents(amount: Decimal) -> int:
    return int(amount * 100)


def create_payment_intent(
    amount: Decimal,
    order_ids: list[str],
    currency: str = "usd",
    metadata: dict[str, Any] | None = None,
) -> stripe.PaymentIntent:
    """
    Create a Stripe PaymentIntent covering a set of orders.

    Args:
        amount: Amount in dollars (will be converted to cents)
        order_ids: Orders settled by this payment
        currency: Currency code (default: USD)
        metadata: Additional metadata to attach (e.g., owner_ref)

    Returns:
        stripe.PaymentIntent with client_secret for the frontend

    Raises:
        PaymentError: If the Stripe API call fails
    """
    _configure()
    intent_metadata = dict(metadata or {})
    intent_metadata[ORDER_IDS_METADATA_KEY] = ",".join(order_ids)

    try:
        return stripe.PaymentIntent.create(
            amount=to_cents(amount),
            currency=currency,
            automatic_payment_methods={"enabled": True},
            metadata=intent_metadata,
        )
    except stripe.error.StripeError as e:
        raise PaymentError(
            message=str(e.user_message or e),
            code=getattr(e, "code", None),
        ) from e


def retrieve_payment_intent(payment_intent_id: str) -> stripe.PaymentIntent:
    """
    Retrieve a PaymentIntent from Stripe.

    Raises:
        PaymentError: If PaymentIntent not found or API call fails
    """
    _configure()
    try:
        return stripe.PaymentIntent.retrieve(payment_intent_id)
    except stripe.error.StripeError as e:
        raise PaymentError(
            message=str(e.user_message or e),
            code=getattr(e, "code", None),
        ) from e


def order_ids_from_metadata(metadata: Any) -> list[str]:
    """Read the covered order ids back out of PaymentIntent metadata."""
    if not metadata:
        return []
    try:
        raw = metadata.get(ORDER_IDS_METADATA_KEY, "")
    except AttributeError:
        return []
    return [part for part in str(raw or "").split(",") if part]


def paid_order_ids(payment_intent_id: str) -> list[str]:
    """
    Verify a PaymentIntent succeeded and return the orders it covers.

    Args:
        payment_intent_id: The Stripe PaymentIntent ID (pi_xxx)

    Returns:
        Order ids recorded on the intent at checkout.

    Raises:
        PaymentError: If the intent cannot be retrieved, has not succeeded,
            or covers no orders.
    """
    intent = retrieve_payment_intent(payment_intent_id)
    if intent.status != "succeeded":
        raise PaymentError(
            message=f"Payment has not succeeded (status: {intent.status})",
            code="payment_incomplete",
        )

    order_ids = order_ids_from_metadata(intent.metadata)
    if not order_ids:
        logger.warning("PaymentIntent %s carries no order ids", payment_intent_id)
        raise PaymentError(
            message="Payment is not linked to any orders",
            code="no_orders",
        )
    return order_ids
