"""Payments module - Stripe settlement of dine-in bills."""

from apps.web.payments.services import (
    PaymentError,
    create_payment_intent,
    order_ids_from_metadata,
    paid_order_ids,
    retrieve_payment_intent,
)

__all__ = [
    "PaymentError",
    "create_payment_intent",
    "order_ids_from_metadata",
    "paid_order_ids",
    "retrieve_payment_intent",
]
