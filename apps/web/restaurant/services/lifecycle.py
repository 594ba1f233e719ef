"""
Order lifecycle engine - validates and applies every state-changing command.

Handles:
1. Placing orders from a client snapshot or the owner's server cart
2. Payment requests and marking orders paid
3. Kitchen status updates (forward-only state machine)
4. Merging a dining session's adhoc orders into one final bill

Each command is validated before the store is touched, writes with one bulk
update or one transaction, and then emits exactly one lifecycle event.
"""

import logging
import uuid
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from django.db import transaction
from django.utils import timezone

from tableside_schemas import (
    CatalogItem,
    LineItemSnapshot,
    OrderCreatedEvent,
    OrderPaidEvent,
    OrderPayRequestedEvent,
    OrderUpdatedEvent,
)

from apps.web.realtime.apps import get_broadcaster
from apps.web.realtime.broadcaster import EventBroadcaster
from apps.web.restaurant.exceptions import (
    EmptyCartError,
    InvalidSelectorError,
    InvalidTransitionError,
    NoUnpaidOrdersError,
    NotFoundError,
    NothingToMergeError,
    OrderingError,
)
from apps.web.restaurant.models import (
    KitchenStatus,
    Order,
    OrderItem,
    OrderKind,
    PaymentStatus,
)
from apps.web.restaurant.services import catalog

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

# Forward-only kitchen progress; served and cancelled are terminal
KITCHEN_TRANSITIONS: dict[str, frozenset[str]] = {
    KitchenStatus.PENDING: frozenset(
        {
            KitchenStatus.PREPARING,
            KitchenStatus.READY,
            KitchenStatus.SERVED,
            KitchenStatus.CANCELLED,
        }
    ),
    KitchenStatus.PREPARING: frozenset(
        {KitchenStatus.READY, KitchenStatus.SERVED, KitchenStatus.CANCELLED}
    ),
    KitchenStatus.READY: frozenset({KitchenStatus.SERVED, KitchenStatus.CANCELLED}),
    KitchenStatus.SERVED: frozenset(),
    KitchenStatus.CANCELLED: frozenset(),
}

KITCHEN_PROGRESS = [
    KitchenStatus.PENDING,
    KitchenStatus.PREPARING,
    KitchenStatus.READY,
    KitchenStatus.SERVED,
]


@dataclass
class CommandResult:
    """Outcome of a successful lifecycle command."""

    orders: list[Order]
    total: Decimal = Decimal("0.00")
    missing_ids: list[str] = field(default_factory=list)
    message: str = ""

    @property
    def order(self) -> Order:
        return self.orders[0]


def can_transition(current: str, requested: str) -> bool:
    """Check a kitchen status move; staying in place is always allowed."""
    if current == requested:
        return True
    return requested in KITCHEN_TRANSITIONS.get(current, frozenset())


def parse_order_ids(raw_ids: Iterable[Any]) -> tuple[list[uuid.UUID], list[str]]:
    """
    Split raw order ids into parsed UUIDs and ids that can never resolve.

    Returns:
        Tuple of (valid_ids, invalid_ids) with duplicates removed.
    """
    valid: list[uuid.UUID] = []
    invalid: list[str] = []
    for raw in raw_ids:
        try:
            parsed = raw if isinstance(raw, uuid.UUID) else uuid.UUID(str(raw))
        except (TypeError, ValueError):
            if str(raw) not in invalid:
                invalid.append(str(raw))
            continue
        if parsed not in valid:
            valid.append(parsed)
    return valid, invalid


def _as_quantity(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _as_price(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        return None
    if not price.is_finite() or price < 0:
        return None
    return price.quantize(CENTS)


def order_amount(lines: Iterable[LineItemSnapshot]) -> Decimal:
    """Sum of unit price times quantity, rounded to cents."""
    total = sum((line.line_total for line in lines), Decimal("0"))
    return total.quantize(CENTS)


def aggregate_lines(orders: Sequence[Order]) -> list[LineItemSnapshot]:
    """
    Combine the line items of several orders into one list.

    Quantities of the same item at the same unit price are summed. Catalog
    lines are keyed by item_ref, synthetic lines by name. First appearance
    decides the output order.
    """
    combined: dict[tuple[str, Decimal], LineItemSnapshot] = {}
    for order in orders:
        for item in order.items.all():
            key_ref = item.item_ref or f"name:{item.item_name}"
            key = (key_ref, item.unit_price)
            if key in combined:
                existing = combined[key]
                combined[key] = existing.model_copy(
                    update={"quantity": existing.quantity + item.quantity}
                )
            else:
                combined[key] = LineItemSnapshot(
                    item_ref=item.item_ref,
                    name=item.item_name,
                    unit_price=item.unit_price,
                    quantity=item.quantity,
                )
    return list(combined.values())


def _merged_kitchen_status(orders: Sequence[Order]) -> str:
    """A final bill is only as far along as its least advanced order."""
    statuses = [o.kitchen_status for o in orders if o.kitchen_status in KITCHEN_PROGRESS]
    if not statuses:
        return KitchenStatus.PENDING
    return min(statuses, key=KITCHEN_PROGRESS.index)


def _common_session(orders: Sequence[Order]) -> str:
    sessions = {o.session_ref for o in orders}
    return sessions.pop() if len(sessions) == 1 else ""


def _create_items(order: Order, lines: Sequence[LineItemSnapshot]) -> None:
    OrderItem.objects.bulk_create(
        [
            OrderItem(
                order=order,
                position=position,
                item_ref=line.item_ref,
                item_name=line.name,
                unit_price=line.unit_price,
                quantity=line.quantity,
                line_total=line.line_total.quantize(CENTS),
            )
            for position, line in enumerate(lines)
        ]
    )


class OrderLifecycle:
    """
    Lifecycle engine for dine-in orders.

    Collaborators are injected so tests and other entry points can swap the
    catalog, the server cart, or the event channel.
    """

    def __init__(
        self,
        broadcaster: EventBroadcaster,
        resolve_items: Callable[[Iterable[str]], list[CatalogItem]] = catalog.resolve_items,
        read_cart: Callable[[str], dict[str, int]] = catalog.read_cart,
        clear_cart: Callable[[str], None] = catalog.clear_cart,
    ) -> None:
        self.broadcaster = broadcaster
        self._resolve_items = resolve_items
        self._read_cart = read_cart
        self._clear_cart = clear_cart

    # =========================================================================
    # Line item resolution
    # =========================================================================

    def _lines_from_snapshot(
        self, raw_items: Sequence[Mapping[str, Any]]
    ) -> list[LineItemSnapshot]:
        """
        Resolve a client-supplied cart snapshot.

        Lines naming a catalog item take name and price from the catalog.
        Lines without an item_ref are synthetic add-ons kept as supplied.
        Lines naming an item the catalog cannot resolve are dropped.
        """
        refs = [str(raw.get("item_ref") or "") for raw in raw_items]
        resolved = {c.item_ref: c for c in self._resolve_items([r for r in refs if r])}

        lines: list[LineItemSnapshot] = []
        for ref, raw in zip(refs, raw_items, strict=True):
            quantity = _as_quantity(raw.get("quantity"))
            if quantity <= 0:
                continue

            if ref:
                item = resolved.get(ref)
                if item is None:
                    logger.info("Dropping unresolvable item %s from snapshot", ref)
                    continue
                lines.append(
                    LineItemSnapshot(
                        item_ref=item.item_ref,
                        name=item.name,
                        unit_price=item.unit_price,
                        quantity=quantity,
                    )
                )
                continue

            name = str(raw.get("name") or "").strip()
            price = _as_price(raw.get("unit_price"))
            if not name or price is None:
                continue
            lines.append(
                LineItemSnapshot(name=name, unit_price=price, quantity=quantity)
            )
        return lines

    def _lines_from_cart(self, cart: Mapping[str, int]) -> list[LineItemSnapshot]:
        wanted = {ref: _as_quantity(qty) for ref, qty in cart.items()}
        wanted = {ref: qty for ref, qty in wanted.items() if qty > 0}
        resolved = {c.item_ref: c for c in self._resolve_items(wanted.keys())}
        return [
            LineItemSnapshot(
                item_ref=ref,
                name=resolved[ref].name,
                unit_price=resolved[ref].unit_price,
                quantity=qty,
            )
            for ref, qty in wanted.items()
            if ref in resolved
        ]

    # =========================================================================
    # Commands
    # =========================================================================

    def place_order(
        self,
        owner_ref: str,
        table_number: int,
        items: Sequence[Mapping[str, Any]] | None = None,
        *,
        session_ref: str = "",
        order_kind: str = OrderKind.SINGLE,
        notes: str = "",
        customer_name: str = "",
    ) -> CommandResult:
        """
        Place a new order.

        Args:
            owner_ref: The placing actor.
            table_number: Physical table, 1 or higher.
            items: Client cart snapshot. When empty the owner's server cart is used.
            session_ref: Dining session; required for adhoc orders.
            order_kind: "single" or "adhoc". Final orders come from merge_session.
            notes: Free text for the kitchen.
            customer_name: Display name for staff.

        Returns:
            CommandResult holding the new order.

        Raises:
            InvalidSelectorError: If owner, table, kind or session is invalid.
            EmptyCartError: If no line item could be resolved.
        """
        if not owner_ref:
            raise InvalidSelectorError("An owner is required to place an order")
        if not isinstance(table_number, int) or table_number < 1:
            raise InvalidSelectorError("A valid table number is required")
        try:
            kind = OrderKind(order_kind)
        except ValueError as exc:
            raise InvalidSelectorError(f"Unknown order kind '{order_kind}'") from exc
        if kind == OrderKind.FINAL:
            raise InvalidSelectorError("Final orders are created by merging a session")
        if kind == OrderKind.ADHOC and not session_ref:
            raise InvalidSelectorError("Adhoc orders need a session")

        used_server_cart = False
        if items:
            lines = self._lines_from_snapshot(items)
        else:
            cart = self._read_cart(owner_ref)
            lines = self._lines_from_cart(cart) if cart else []
            used_server_cart = bool(cart)

        if not lines:
            raise EmptyCartError()

        amount = order_amount(lines)

        with transaction.atomic():
            order = Order.objects.create(
                owner_ref=owner_ref,
                session_ref=session_ref,
                customer_name=customer_name,
                table_number=table_number,
                order_kind=kind,
                notes=notes,
                amount=amount,
                payment_status=PaymentStatus.UNPAID,
                payment_requested=False,
                kitchen_status=KitchenStatus.PENDING,
            )
            _create_items(order, lines)

        if used_server_cart:
            self._clear_cart(owner_ref)

        logger.info(
            "Order %s placed: owner=%s table=%s kind=%s amount=%s",
            order.pk,
            owner_ref,
            table_number,
            kind,
            amount,
        )

        self.broadcaster.emit(
            OrderCreatedEvent(
                order_id=str(order.pk),
                table_number=order.table_number,
                order_kind=kind.value,
                amount=amount,
                session_ref=session_ref,
            )
        )
        return CommandResult(orders=[order], total=amount)

    def request_payment(
        self,
        owner_ref: str,
        order_ids: Sequence[Any] | None = None,
        table_number: int | None = None,
    ) -> CommandResult:
        """
        Ask staff to collect payment for the owner's unpaid orders.

        Merged adhoc orders and cancelled orders are not billable and are never
        selected; their final order carries the bill instead.

        Raises:
            InvalidSelectorError: If no owner is given.
            NoUnpaidOrdersError: If nothing billable was selected.
        """
        if not owner_ref:
            raise InvalidSelectorError("An owner is required to request payment")

        qs = Order.objects.for_owner(owner_ref).billable()
        if order_ids:
            valid, _invalid = parse_order_ids(order_ids)
            qs = qs.filter(pk__in=valid)

        selected = list(qs.values_list("pk", flat=True))
        if not selected:
            raise NoUnpaidOrdersError()

        Order.objects.filter(
            pk__in=selected, payment_status=PaymentStatus.UNPAID
        ).update(payment_requested=True, updated_at=timezone.now())

        orders = list(
            Order.objects.filter(pk__in=selected)
            .prefetch_related("items")
            .order_by("created_at")
        )
        total = sum((o.amount for o in orders), Decimal("0.00"))
        table = table_number if table_number is not None else orders[-1].table_number

        logger.info(
            "Payment requested: owner=%s table=%s orders=%d total=%s",
            owner_ref,
            table,
            len(orders),
            total,
        )

        self.broadcaster.emit(
            OrderPayRequestedEvent(
                table_number=table,
                session_ref=_common_session(orders),
                order_ids=[str(o.pk) for o in orders],
                total=total,
            )
        )
        return CommandResult(orders=orders, total=total)

    def mark_paid(
        self,
        order_ids: Sequence[Any] | None = None,
        owner_ref: str | None = None,
    ) -> CommandResult:
        """
        Mark orders paid and clear their payment request.

        Select either by explicit ids, or by owner (every requested-but-unpaid
        order of that owner). Explicit ids win when both are given. Already
        paid orders are left as they are, so repeating the call is a no-op.

        Raises:
            InvalidSelectorError: If neither selector is given.
            NotFoundError: If explicit ids were given and none resolved.
        """
        if not order_ids and not owner_ref:
            raise InvalidSelectorError("Provide order_ids or owner_ref")

        missing: list[str] = []
        if order_ids:
            valid, invalid = parse_order_ids(order_ids)
            found = set(Order.objects.filter(pk__in=valid).values_list("pk", flat=True))
            missing = invalid + [str(pk) for pk in valid if pk not in found]
            if not found:
                raise NotFoundError(", ".join(missing))
            selected = list(found)
        else:
            selected = list(
                Order.objects.for_owner(owner_ref or "")
                .awaiting_payment()
                .values_list("pk", flat=True)
            )

        now = timezone.now()
        changed = Order.objects.filter(
            pk__in=selected, payment_status=PaymentStatus.UNPAID
        ).update(
            payment_status=PaymentStatus.PAID,
            payment_requested=False,
            paid_at=now,
            updated_at=now,
        )

        orders = list(
            Order.objects.filter(pk__in=selected)
            .prefetch_related("items")
            .order_by("created_at")
        )
        total = sum((o.amount for o in orders), Decimal("0.00"))

        logger.info(
            "Marked paid: selected=%d changed=%d missing=%d",
            len(selected),
            changed,
            len(missing),
        )
        if missing:
            logger.warning("mark_paid skipped unknown order ids: %s", missing)
        folded = [str(o.pk) for o in orders if o.merged]
        if folded:
            logger.warning(
                "Paid orders already merged into a final bill, settle it by hand: %s",
                folded,
            )

        self.broadcaster.emit(OrderPaidEvent(order_ids=[str(o.pk) for o in orders]))
        return CommandResult(orders=orders, total=total, missing_ids=missing)

    def update_kitchen_status(
        self,
        order_id: Any,
        status: str | None = None,
        payment_status: str | None = None,
    ) -> CommandResult:
        """
        Move an order's kitchen status and, optionally, its payment status.

        The two axes change independently: a kitchen move never touches
        payment. Setting payment to paid clears the payment request, exactly
        like mark_paid.

        Raises:
            InvalidSelectorError: If neither field is given.
            OrderingError: If a status value is unknown.
            NotFoundError: If the order does not exist.
            InvalidTransitionError: If the kitchen move is not allowed.
        """
        if status is None and payment_status is None:
            raise InvalidSelectorError("Provide a kitchen status or payment status")

        new_status = None
        if status is not None:
            try:
                new_status = KitchenStatus(status)
            except ValueError as exc:
                raise OrderingError(f"Unknown kitchen status '{status}'") from exc

        new_payment = None
        if payment_status is not None:
            try:
                new_payment = PaymentStatus(payment_status)
            except ValueError as exc:
                raise OrderingError(f"Unknown payment status '{payment_status}'") from exc

        valid, _invalid = parse_order_ids([order_id])
        if not valid:
            raise NotFoundError(str(order_id))
        try:
            order = Order.objects.get(pk=valid[0])
        except Order.DoesNotExist as exc:
            raise NotFoundError(str(order_id)) from exc

        now = timezone.now()
        changes: dict[str, Any] = {}

        if new_status is not None and new_status != order.kitchen_status:
            if not can_transition(order.kitchen_status, new_status):
                raise InvalidTransitionError(order.kitchen_status, new_status)
            changes["kitchen_status"] = new_status

        if new_payment is not None and new_payment != order.payment_status:
            changes["payment_status"] = new_payment
            if new_payment == PaymentStatus.PAID:
                changes["payment_requested"] = False
                changes["paid_at"] = now
            else:
                changes["paid_at"] = None

        if changes:
            changes["updated_at"] = now
            Order.objects.filter(pk=order.pk).update(**changes)
            for name, value in changes.items():
                setattr(order, name, value)
            logger.info("Order %s updated: %s", order.pk, sorted(changes))

        self.broadcaster.emit(
            OrderUpdatedEvent(
                order_id=str(order.pk),
                kitchen_status=order.kitchen_status,
                payment_status=order.payment_status,
            )
        )
        return CommandResult(orders=[order], total=order.amount)

    def merge_session(self, session_ref: str, pay_all: bool = False) -> CommandResult:
        """
        Fold every un-merged adhoc order of a session into one final order.

        Source orders are kept with merged=True. The merge runs in one
        transaction with the sources locked, so two concurrent merges cannot
        both count the same order.

        Raises:
            InvalidSelectorError: If no session is given.
            NothingToMergeError: If the session has no adhoc orders left.
        """
        if not session_ref:
            raise InvalidSelectorError("A session is required to merge")

        now = timezone.now()
        with transaction.atomic():
            sources = list(
                Order.objects.select_for_update()
                .mergeable(session_ref)
                .order_by("created_at")
                .prefetch_related("items")
            )
            if not sources:
                raise NothingToMergeError(session_ref)

            lines = aggregate_lines(sources)
            combined = order_amount(lines)
            expected = sum((o.amount for o in sources), Decimal("0.00"))
            if combined != expected:
                logger.warning(
                    "Merged amount %s differs from constituent total %s for session %s",
                    combined,
                    expected,
                    session_ref,
                )

            requested = not pay_all and any(o.payment_requested for o in sources)
            final = Order.objects.create(
                owner_ref=sources[0].owner_ref,
                session_ref=session_ref,
                customer_name=next(
                    (o.customer_name for o in sources if o.customer_name), ""
                ),
                table_number=sources[-1].table_number,
                order_kind=OrderKind.FINAL,
                notes="\n".join(o.notes for o in sources if o.notes),
                amount=combined,
                merged_amount=combined,
                payment_status=PaymentStatus.PAID if pay_all else PaymentStatus.UNPAID,
                payment_requested=requested,
                paid_at=now if pay_all else None,
                kitchen_status=_merged_kitchen_status(sources),
            )
            _create_items(final, lines)

            merged_count = Order.objects.filter(
                pk__in=[o.pk for o in sources], merged=False
            ).update(merged=True, payment_requested=False, updated_at=now)
            if merged_count != len(sources):
                # Another merge claimed some of these orders first
                raise NothingToMergeError(session_ref)

        logger.info(
            "Session %s merged: %d adhoc orders -> final %s amount=%s paid=%s",
            session_ref,
            len(sources),
            final.pk,
            combined,
            pay_all,
        )

        self.broadcaster.emit(
            OrderCreatedEvent(
                order_id=str(final.pk),
                table_number=final.table_number,
                order_kind=OrderKind.FINAL.value,
                amount=combined,
                session_ref=session_ref,
            )
        )
        return CommandResult(orders=[final], total=combined)


def get_lifecycle() -> OrderLifecycle:
    """Build an engine wired to the realtime app's event channel."""
    return OrderLifecycle(get_broadcaster())
