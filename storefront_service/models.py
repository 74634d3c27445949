"""
models.py — Data Models for Catalog, Cart, Checkout and Payment Notifications

This module defines the data structures exchanged with the storefront UI and the
payment provider. It uses Pydantic models to ensure type safety and automatic
validation of incoming data. Field names follow the camelCase wire format.

Models:
    - Product: A catalog entry.
    - CartItem / Cart: A cart line and the computed cart aggregate.
    - CartSnapshot: The frozen cart handed to checkout.
    - OrderRequest: The payment-request body sent to the provider.
    - PaymentLink / CheckoutResult: Outcome of an order-creation attempt.
    - WebhookPayload / WebhookAck: Inbound payment notifications and their acknowledgment.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    ValidationError,
    computed_field,
    field_validator,
)

from .errors import EmptyCart, InvalidInput

SUCCESS_CODE = "00"


def _money_to_json(value: Decimal):
    if value == value.to_integral_value():
        return int(value)
    return float(value)


# Decimal internally, plain JSON number on the wire
Money = Annotated[Decimal, PlainSerializer(_money_to_json, when_used="json")]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Product(BaseModel):
    """
    A product as stored in the catalog.

    Attributes:
        id (str): Catalog identifier.
        name (str): Display name.
        description (str): Long description.
        price (Decimal): Unit price in whole currency units. Must not be negative.
        image (Optional[str]): Hosted image URL.
        createdAt (datetime): Creation timestamp (UTC).
        updatedAt (datetime): Last modification timestamp (UTC).
    """
    id: str
    name: str
    description: str = ""
    price: Money = Field(..., ge=0)
    image: Optional[str] = None
    createdAt: datetime = Field(default_factory=_utcnow)
    updatedAt: datetime = Field(default_factory=_utcnow)


class CartItem(BaseModel):
    """
    A single cart line. Name and price are frozen at the moment the product was added.

    Attributes:
        id (Optional[str]): Opaque line identifier.
        productId (str): Reference to the catalog product.
        name (str): Product name at add-time.
        price (Decimal): Unit price at add-time.
        quantity (int): Number of units, at least 1.
        image (Optional[str]): Product image at add-time.
    """
    id: Optional[str] = None
    productId: str
    name: str
    price: Money = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    image: Optional[str] = None

    @field_validator("productId", mode="before")
    @classmethod
    def _coerce_product_id(cls, value):
        # The UI sends numeric ids for seeded products
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


class Cart(BaseModel):
    """The cart aggregate. Totals are derived from the lines on every read."""
    items: List[CartItem] = Field(default_factory=list)

    @computed_field
    @property
    def total(self) -> Money:
        return sum((item.subtotal for item in self.items), Decimal(0))

    @computed_field
    @property
    def itemCount(self) -> int:
        return sum(item.quantity for item in self.items)


class AddToCartRequest(BaseModel):
    productId: str
    quantity: int = 1

    @field_validator("productId", mode="before")
    @classmethod
    def _coerce_product_id(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class UpdateCartItemRequest(BaseModel):
    quantity: int


class CartSnapshot(BaseModel):
    """
    The cart as submitted for checkout: its lines plus the total declared by the client.

    Attributes:
        items (List[CartItem]): Ordered cart lines, at least one.
        total (Decimal): Declared total in whole currency units.
    """
    items: List[CartItem]
    total: Money

    @classmethod
    def from_payload(cls, payload: Any) -> "CartSnapshot":
        """
        Validates a raw checkout body ({items, total}).

        A missing total falls back to the sum of the submitted lines.

        Raises:
            EmptyCart: If the body carries no items.
            InvalidInput: If the body or any line is malformed.
        """
        if isinstance(payload, CartSnapshot):
            if not payload.items:
                raise EmptyCart()
            return payload
        if not isinstance(payload, Mapping):
            raise InvalidInput("Request body must be a JSON object")

        items = payload.get("items")
        if not items:
            raise EmptyCart()
        if not isinstance(items, list):
            raise InvalidInput("Cart items must be a list")

        try:
            lines = [CartItem.model_validate(item) for item in items]
            total = payload.get("total")
            if total is None:
                total = sum((line.subtotal for line in lines), Decimal(0))
            return cls(items=lines, total=total)
        except ValidationError as e:
            details = [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]
            raise InvalidInput("Invalid cart items", details=details) from e


class OrderLineItem(BaseModel):
    name: str
    quantity: int = Field(..., ge=1)
    price: int = Field(..., ge=0)


class OrderRequest(BaseModel):
    """
    Payment-request body sent once to the provider.

    Amount and prices are whole currency units; the provider's currency has no subdivision.
    """
    orderCode: int = Field(..., ge=0)
    amount: int = Field(..., gt=0)
    description: str
    items: List[OrderLineItem]
    returnUrl: str
    cancelUrl: str
    signature: Optional[str] = None


class PaymentLink(BaseModel):
    checkoutUrl: str
    qrCode: Optional[str] = None


class Identity(BaseModel):
    """The authenticated user behind a request, decoded from the identity cookie."""
    userId: str
    email: Optional[str] = None


class CheckoutResult(BaseModel):
    """
    Outcome of an order-creation attempt.

    A live or demo result carries the order code and the redirect target. A fallback
    result carries `fallback=True` plus the provider error so the caller can send the
    user down the demo checkout instead.
    """
    orderCode: Optional[int] = None
    paymentUrl: Optional[str] = None
    mode: Literal["live", "demo"] = "live"
    qrCode: Optional[str] = None
    fallback: bool = False
    error: Optional[str] = None
    details: Any = None

    @property
    def status_code(self) -> int:
        return 500 if self.fallback else 200

    def to_response(self) -> Dict[str, Any]:
        if self.fallback:
            body: Dict[str, Any] = {"error": self.error, "fallback": True}
            if self.details is not None:
                body["details"] = self.details
            return body

        body = {"orderCode": self.orderCode, "paymentUrl": self.paymentUrl}
        if self.mode == "demo":
            body["demo"] = True
        elif self.qrCode is not None:
            body["qrCode"] = self.qrCode
        return body


class WebhookData(BaseModel):
    """Transaction details of a payment notification. Unknown provider fields are kept."""
    model_config = ConfigDict(extra="allow")

    orderCode: int
    amount: int
    description: str = ""
    code: Optional[str] = None


class WebhookPayload(BaseModel):
    """
    A payment notification as posted by the provider.

    Attributes:
        code (str): Provider status code, "00" denotes success.
        desc (str): Human readable status.
        success (Optional[bool]): Provider's own success flag.
        data (WebhookData): Signed transaction details.
        signature (str): HMAC-SHA256 over `data`.
    """
    code: str
    desc: str = ""
    success: Optional[bool] = None
    data: WebhookData
    signature: str

    @field_validator("code", mode="before")
    @classmethod
    def _coerce_code(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return f"{value:02d}"
        return value

    @property
    def succeeded(self) -> bool:
        return self.code == SUCCESS_CODE and self.data.code in (None, SUCCESS_CODE)


class WebhookAck(BaseModel):
    success: bool
    message: str


class PaymentRecord(BaseModel):
    orderCode: int
    amount: int
    description: str = ""
    recordedAt: datetime = Field(default_factory=_utcnow)
