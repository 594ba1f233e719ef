"""
Pydantic schemas for the ordering API.

Request bodies are validated here before they reach the lifecycle engine.
Responses reuse the shared snapshots from tableside_schemas.
"""

from datetime import date
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tableside_schemas import KitchenStatus, OrderSnapshot, PaymentStatus

# =============================================================================
# Menu and Cart
# =============================================================================


class MenuItemSchema(BaseModel):
    """A catalog item as shown to diners."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    category: str
    price: Decimal
    image_url: str
    is_available: bool


class MenuResponse(BaseModel):
    """Response for GET /api/menu."""

    success: bool = True
    items: list[MenuItemSchema]


class CartItemRequest(BaseModel):
    """Request body for POST /api/cart/add and /api/cart/remove."""

    item_ref: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(default=1, ge=1, le=99)


class CartResponse(BaseModel):
    """Response for the cart endpoints."""

    success: bool = True
    items: dict[str, int]


# =============================================================================
# Order Commands
# =============================================================================


class LineItemInput(BaseModel):
    """
    One line of a client cart snapshot.

    Catalog lines only need item_ref and quantity. Synthetic lines omit
    item_ref and carry their own name and price.
    """

    item_ref: str = Field(default="", max_length=100)
    name: str = Field(default="", max_length=200)
    unit_price: Decimal | None = Field(default=None, ge=0)
    quantity: int = Field(default=1, le=99)


class PlaceOrderRequest(BaseModel):
    """Request body for POST /api/orders/place."""

    table_number: int = Field(..., ge=1)
    items: list[LineItemInput] = Field(default_factory=list)
    session_ref: str = Field(default="", max_length=100)
    order_kind: Literal["single", "adhoc"] = "single"
    notes: str = Field(default="", max_length=1000)
    customer_name: str = Field(default="", max_length=200)


class RequestPaymentRequest(BaseModel):
    """Request body for POST /api/orders/payrequest."""

    order_ids: list[str] = Field(default_factory=list)
    table_number: int | None = Field(default=None, ge=1)


class MarkPaidRequest(BaseModel):
    """Request body for POST /api/orders/markpaid."""

    order_ids: list[str] = Field(default_factory=list)
    owner_ref: str | None = None

    @model_validator(mode="after")
    def require_selector(self) -> "MarkPaidRequest":
        if not self.order_ids and not self.owner_ref:
            raise ValueError("Provide order_ids or owner_ref")
        return self


class UpdateStatusRequest(BaseModel):
    """Request body for POST /api/orders/updatestatus."""

    order_id: str
    status: KitchenStatus | None = None
    payment_status: PaymentStatus | None = None

    @model_validator(mode="after")
    def require_change(self) -> "UpdateStatusRequest":
        if self.status is None and self.payment_status is None:
            raise ValueError("Provide status or payment_status")
        return self


class MergeSessionRequest(BaseModel):
    """Request body for POST /api/orders/merge."""

    session_ref: str = Field(..., min_length=1, max_length=100)
    pay_all: bool = False


class VerifyPaymentRequest(BaseModel):
    """Request body for POST /api/orders/verify."""

    payment_intent_id: str = Field(..., min_length=1)


# =============================================================================
# Order Queries
# =============================================================================


class OrderListParams(BaseModel):
    """Query string for GET /api/orders/list and /api/orders/mine."""

    model_config = ConfigDict(populate_by_name=True)

    date_from: date | None = Field(default=None, alias="from")
    date_to: date | None = Field(default=None, alias="to")
    status: KitchenStatus | None = None
    payment_status: PaymentStatus | None = None
    kind: Literal["single", "adhoc", "final"] | None = None


# =============================================================================
# Responses
# =============================================================================


class CommandResponse(BaseModel):
    """Envelope returned by every order command."""

    success: bool = True
    message: str = ""
    orders: list[OrderSnapshot] = Field(default_factory=list)
    total: Decimal = Decimal("0.00")
    missing_ids: list[str] = Field(default_factory=list)


class OrderListResponse(BaseModel):
    """Response for the order list endpoints."""

    success: bool = True
    orders: list[OrderSnapshot]
    total: Decimal | None = None


class OrderDetailResponse(BaseModel):
    """Response for GET /api/orders/{order_id}."""

    success: bool = True
    order: OrderSnapshot


class CheckoutResponse(BaseModel):
    """Response for POST /api/orders/checkout."""

    success: bool = True
    payment_intent_id: str
    client_secret: str | None
    order_ids: list[str]
    total: Decimal


class ValidationErrorDetail(BaseModel):
    """A single validation error."""

    field: str
    message: str


class ValidationErrorResponse(BaseModel):
    """Response for validation errors."""

    success: Literal[False] = False
    message: str = "Invalid request"
    error: Literal["validation_error"] = "validation_error"
    details: list[ValidationErrorDetail]
