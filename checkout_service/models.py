"""
models.py — Data Models for Checkout and Order Processing

Pydantic models for the carts and orders flowing through the checkout workflow.
Request models are deliberately loose about presence of fields: whether a cart or an
order is complete is decided by `validation.py`, so that incomplete input is reported
with the workflow's own error types instead of a generic schema error.

Models:
    - CartItem, Cart: what the storefront submits for payment authorization
    - Customer: contact and delivery data attached to an order
    - OrderDraft, Order: the persisted order record
    - GatewayResponse: raw response envelope of the payment authority
    - NotificationSummary: human-readable order summary for the mailer
    - GatewayPlacement, DirectPlacement: the two variants of placing an order
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# Amounts are stored as NUMERIC(12, 2)
MAX_AMOUNT_DIGITS = 12


class OrderStatus(str, Enum):
    PENDING = "pending"
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    FAILED = "failed"


class CartItem(BaseModel):
    """
    A single product line of a cart. Immutable once submitted.

    Attributes:
        productName (str): Display name sent to the payment authority.
        quantity (int): Number of units, greater than zero.
        price (Decimal): Unit price, not negative.
    """
    model_config = ConfigDict(frozen=True)

    productName: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    price: Decimal = Field(..., ge=0, max_digits=MAX_AMOUNT_DIGITS)


class Cart(BaseModel):
    """
    Cart as declared by the storefront. The total is trusted as sent.
    """
    items: Optional[List[CartItem]] = None
    total: Optional[Decimal] = Field(None, max_digits=MAX_AMOUNT_DIGITS)


class Customer(BaseModel):
    """
    Customer contact and delivery data.

    Accepts the legacy storefront keys (`email_customer`, `user_Name`, `ville`, `quartier`)
    as well as the plain names.
    """
    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(..., validation_alias=AliasChoices("email", "email_customer"))
    name: str = Field(..., validation_alias=AliasChoices("name", "user_Name"))
    city: str = Field(..., validation_alias=AliasChoices("city", "ville"))
    district: str = Field(..., validation_alias=AliasChoices("district", "quartier"))
    phoneNumber: str


class OrderDraft(BaseModel):
    """An order that has passed validation but has no id yet."""
    customer: Customer
    items: List[CartItem]
    totalAmount: Decimal
    paymentMethod: str
    status: OrderStatus = OrderStatus.PENDING
    externalAuthorizationId: Optional[str] = None


class Order(OrderDraft):
    """An order as stored. `id` is assigned by the store."""
    id: int
    createdAt: Optional[datetime] = None


class GatewayResponse(BaseModel):
    """
    Response envelope of the payment authority.

    Attributes:
        externalId (str | None): Authority-side order id (the capture handle).
        rawPayload (dict): Response body, returned to the caller unmodified.
        statusCode (int): HTTP status returned by the authority.
    """
    externalId: Optional[str] = None
    rawPayload: dict = Field(default_factory=dict)
    statusCode: int


class NotificationSummary(BaseModel):
    orderId: int
    clientName: str
    email: str
    productNames: str
    totalAmount: Decimal
    location: str
    phoneNumber: str

    @classmethod
    def for_order(cls, order_id: int, draft: OrderDraft) -> "NotificationSummary":
        customer = draft.customer
        return cls(
            orderId=order_id,
            clientName=customer.name,
            email=customer.email,
            productNames=", ".join(item.productName for item in draft.items),
            totalAmount=draft.totalAmount,
            location=f"{customer.district}, {customer.city}",
            phoneNumber=customer.phoneNumber,
        )


class PlacementResult(BaseModel):
    """
    Outcome of a direct order placement. `notificationError` is set when the order
    was stored but the notification could not be dispatched.
    """
    orderId: int
    notificationError: Optional[str] = None


# --- Placement variants ---

class GatewayPlacement(BaseModel):
    """Place an order by opening a payment authorization (nothing is stored)."""
    flow: Literal["gateway"] = "gateway"
    cart: Optional[Cart] = None


class DirectPlacement(BaseModel):
    """Place an order directly in the store (administrative / cash-on-delivery path)."""
    flow: Literal["direct"] = "direct"
    user: Optional[Customer] = None
    cartItems: Optional[List[CartItem]] = None
    totalAmount: Optional[Decimal] = Field(None, max_digits=MAX_AMOUNT_DIGITS)
    paymentMethod: Optional[str] = None
    order_status: Optional[OrderStatus] = None
    externalAuthorizationId: Optional[str] = None


Placement = Annotated[Union[GatewayPlacement, DirectPlacement], Field(discriminator="flow")]


# --- API bodies ---

class CreateOrderRequest(BaseModel):
    cart: Optional[Cart] = None


class UpdateStatusRequest(BaseModel):
    orderStatus: Optional[OrderStatus] = None
