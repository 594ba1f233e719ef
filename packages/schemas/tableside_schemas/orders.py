"""Order schemas - data contracts shared by the engine, the API and observers."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

# =============================================================================
# Enums
# =============================================================================


class OrderKind(str, Enum):
    """How an order takes part in billing."""

    SINGLE = "single"
    ADHOC = "adhoc"
    FINAL = "final"


class KitchenStatus(str, Enum):
    """Kitchen progress of an order."""

    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Payment state of an order."""

    UNPAID = "unpaid"
    PAID = "paid"


# =============================================================================
# Catalog
# =============================================================================


class CatalogItem(BaseModel):
    """A menu item as resolved from the catalog at order time."""

    item_ref: str
    name: str
    unit_price: Decimal


# =============================================================================
# Orders
# =============================================================================


class LineItemSnapshot(BaseModel):
    """A line item frozen at order creation."""

    item_ref: str = ""
    name: str
    unit_price: Decimal = Field(ge=0)
    quantity: int = Field(ge=1)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class OrderSnapshot(BaseModel):
    """Authoritative view of an order as returned by the query surface."""

    id: str
    owner_ref: str
    session_ref: str = ""
    table_number: int
    order_kind: OrderKind
    items: list[LineItemSnapshot]
    amount: Decimal
    merged_amount: Decimal = Decimal("0.00")
    payment_status: PaymentStatus
    payment_requested: bool
    kitchen_status: KitchenStatus
    merged: bool
    notes: str = ""
    customer_name: str = ""
    created_at: datetime
    updated_at: datetime
    paid_at: datetime | None = None
