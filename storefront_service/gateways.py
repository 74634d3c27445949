"""
gateways.py — Order-Creation Strategies

Two interchangeable ways to open a checkout for an order:
    • LiveOrderGateway — creates a payment link at the payment provider
    • DemoOrderGateway — simulated checkout, used when no provider credentials are configured

`select_gateway()` picks one from the deployment settings.
"""

import logging
from abc import ABC, abstractmethod
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from pydantic import ValidationError

from .clients import PaymentClient
from .config import Settings
from .errors import InvalidInput
from .models import CartSnapshot, OrderLineItem, OrderRequest, PaymentLink
from .signatures import sign_payment_request

DEMO_PAYMENT_URL = "/payment/demo"

log = logging.getLogger(__name__)


def to_whole_units(value: Decimal) -> int:
    """Rounds half up to a whole currency unit."""
    return int(Decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def build_order_request(order_code: int, snapshot: CartSnapshot, settings: Settings) -> OrderRequest:
    """
    Converts a cart snapshot into the signed provider order body.

    Raises:
        InvalidInput: If the rounded amount is not positive.
    """
    base_url = settings.base_url.rstrip("/")
    amount = to_whole_units(snapshot.total)
    description = f"Order payment - {len(snapshot.items)} items"
    return_url = f"{base_url}/payment/success"
    cancel_url = f"{base_url}/cart"

    try:
        order = OrderRequest(
            orderCode=order_code,
            amount=amount,
            description=description,
            items=[
                OrderLineItem(name=item.name, quantity=item.quantity, price=to_whole_units(item.price))
                for item in snapshot.items
            ],
            returnUrl=return_url,
            cancelUrl=cancel_url,
        )
    except ValidationError as e:
        raise InvalidInput("Order total must be a positive amount") from e

    if settings.payos_checksum_key:
        order.signature = sign_payment_request(
            amount=order.amount,
            cancel_url=order.cancelUrl,
            description=order.description,
            order_code=order.orderCode,
            return_url=order.returnUrl,
            checksum_key=settings.payos_checksum_key,
        )
    return order


class OrderGateway(ABC):
    """Opens a checkout for an order and returns where to send the user."""

    mode = "live"

    @abstractmethod
    def open_checkout(self, order_code: int, snapshot: CartSnapshot) -> PaymentLink:
        """
        Args:
            order_code: Identifier correlating the checkout with the provider transaction.
            snapshot: The validated cart.

        Returns:
            PaymentLink: The redirect target.

        Raises:
            ProviderFailure: If the provider could not create the checkout.
        """

    def close(self):
        pass


class DemoOrderGateway(OrderGateway):
    """Simulated checkout. Makes no outbound call."""

    mode = "demo"

    def open_checkout(self, order_code: int, snapshot: CartSnapshot) -> PaymentLink:
        log.info(f"[Order: {order_code}] Provider not configured, using demo checkout.")
        return PaymentLink(checkoutUrl=DEMO_PAYMENT_URL)


class LiveOrderGateway(OrderGateway):
    """Creates a payment link at the provider with exactly one request per order."""

    mode = "live"

    def __init__(self, settings: Settings, client: Optional[PaymentClient] = None):
        self.settings = settings
        self.client = client or PaymentClient(settings)

    def open_checkout(self, order_code: int, snapshot: CartSnapshot) -> PaymentLink:
        order = build_order_request(order_code, snapshot, self.settings)
        return self.client.create_payment_request(order)

    def close(self):
        self.client.close()


def select_gateway(settings: Settings) -> OrderGateway:
    if settings.payos_configured:
        return LiveOrderGateway(settings)
    log.warning("Payment provider credentials not configured, checkout runs in demo mode.")
    return DemoOrderGateway()
