"""
Order queryset - the filters every order query is built from.
"""

from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING

from django.utils import timezone

from apps.web.core.managers import OwnedQuerySet

if TYPE_CHECKING:
    from apps.web.restaurant.models import Order


def day_bounds(
    date_from: date | None, date_to: date | None
) -> tuple[datetime | None, datetime | None]:
    """
    Turn calendar days into an inclusive datetime window.

    ``date_from`` starts at 00:00:00.000 and ``date_to`` covers the whole day,
    both in the current time zone. The upper bound is returned as the start of
    the following day and must be compared exclusively.
    """
    tz = timezone.get_current_timezone()
    start = None
    end = None
    if date_from is not None:
        start = datetime.combine(date_from, time.min, tzinfo=tz)
    if date_to is not None:
        end = datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=tz)
    return start, end


class OrderQuerySet(OwnedQuerySet["Order"]):
    """Chainable filters for orders."""

    def unpaid(self) -> "OrderQuerySet":
        return self.filter(payment_status="unpaid")

    def billable(self) -> "OrderQuerySet":
        """Unpaid orders that still carry their own bill."""
        return self.unpaid().filter(merged=False).exclude(kitchen_status="cancelled")

    def awaiting_payment(self) -> "OrderQuerySet":
        """Unpaid orders a diner asked to pay that still carry their own bill."""
        return self.unpaid().filter(payment_requested=True, merged=False)

    def mergeable(self, session_ref: str) -> "OrderQuerySet":
        """Adhoc orders of a session still owed; paid ones stay out of the bill."""
        return (
            self.unpaid()
            .filter(session_ref=session_ref, order_kind="adhoc", merged=False)
            .exclude(kitchen_status="cancelled")
        )

    def created_between(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> "OrderQuerySet":
        """Filter by creation date, both calendar days inclusive."""
        start, end = day_bounds(date_from, date_to)
        qs = self
        if start is not None:
            qs = qs.filter(created_at__gte=start)
        if end is not None:
            qs = qs.filter(created_at__lt=end)
        return qs
