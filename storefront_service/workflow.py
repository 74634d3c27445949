"""
workflow.py — Core Orchestration Logic for Checkout

This module contains the order-creation workflow behind the checkout button.
It turns a cart snapshot into a payment redirect in the correct sequence.

Workflow Overview:
1. Check the caller's identity
2. Validate the cart snapshot (and product existence, when a catalog is wired)
3. Generate an order code
4. Open the checkout through the selected gateway (payment provider or demo)
5. Degrade provider failures into a fallback result instead of failing the checkout
"""

import logging
import random
from typing import Any, Optional

from .catalog import CatalogStore
from .errors import InvalidInput, ProviderFailure, Unauthenticated
from .gateways import OrderGateway
from .models import CartSnapshot, CheckoutResult, Identity

ORDER_CODE_RANGE = 1_000_000

log = logging.getLogger(__name__)


class OrderOrchestrator:
    """
    Creates payment orders from cart snapshots.

    Args:
        gateway (OrderGateway): Live provider or demo strategy.
        catalog (Optional[CatalogStore]): When given, every submitted product must exist in it.
        rng (Optional[random.Random]): Source of order codes.
    """

    def __init__(self, gateway: OrderGateway, catalog: Optional[CatalogStore] = None,
                 rng: Optional[random.Random] = None):
        self.gateway = gateway
        self.catalog = catalog
        self.rng = rng or random.Random()

    def next_order_code(self) -> int:
        # Not checked for uniqueness; the provider rejects a reused code.
        return self.rng.randrange(ORDER_CODE_RANGE)

    def create_order(self, identity: Optional[Identity], snapshot: Any) -> CheckoutResult:
        """
        Executes the order-creation workflow for a single checkout attempt.

        Args:
            identity (Optional[Identity]): The authenticated user, None if the request had none.
            snapshot (CartSnapshot | Mapping): The cart snapshot, or the raw {items, total} body.

        Returns:
            CheckoutResult: One of
                - demo result: orderCode, paymentUrl "/payment/demo", mode "demo"
                - live result: orderCode, provider checkout URL, optional QR payload
                - fallback result: fallback=True with the provider error details

        Raises:
            Unauthenticated: If no identity is present. No provider call is made.
            EmptyCart: If the snapshot has no items.
            InvalidInput: If the snapshot is malformed or references unknown products.

        Workflow Steps:
            Step 1 – Preconditions:
                - Identity first, then a non-empty cart; either failure stops before any call.

            Step 2 – Gateway:
                - Demo mode answers locally.
                - Live mode sends one payment request, amount rounded to whole units.

        Fallback:
            - Provider rejection, timeout or unreadable response → fallback result, never raised.
        """
        # --- 1. Preconditions ---
        if identity is None:
            log.warning("Checkout rejected: no authenticated identity.")
            raise Unauthenticated()

        return self._checkout(snapshot, f"user {identity.userId}")

    def create_test_order(self, snapshot: Any) -> CheckoutResult:
        """
        Runs the checkout without an identity. Used by the payment test page,
        which is served by a demo-mode orchestrator.
        """
        return self._checkout(snapshot, "the payment test page")

    def _checkout(self, snapshot: Any, requested_by: str) -> CheckoutResult:
        snapshot = CartSnapshot.from_payload(snapshot)
        self._check_products(snapshot)

        order_code = self.next_order_code()
        log_prefix = f"[Order: {order_code}]"
        log.info(
            f"{log_prefix} Checkout started by {requested_by} "
            f"({len(snapshot.items)} lines, declared total {snapshot.total})."
        )

        computed_total = sum(item.subtotal for item in snapshot.items)
        if computed_total != snapshot.total:
            log.warning(f"{log_prefix} Declared total {snapshot.total} differs from line total {computed_total}.")

        # --- 2. Gateway ---
        try:
            link = self.gateway.open_checkout(order_code, snapshot)
        except ProviderFailure as e:
            log.error(f"{log_prefix} Payment order failed ({type(e).__name__}). Falling back to demo checkout.")
            return CheckoutResult(orderCode=order_code, fallback=True, error=e.message, details=e.details)

        log.info(f"{log_prefix} Checkout ready ({self.gateway.mode}): {link.checkoutUrl}")
        return CheckoutResult(
            orderCode=order_code,
            paymentUrl=link.checkoutUrl,
            mode=self.gateway.mode,
            qrCode=link.qrCode,
        )

    def _check_products(self, snapshot: CartSnapshot):
        if self.catalog is None:
            return
        missing = [item.productId for item in snapshot.items
                   if self.catalog.get_product(item.productId) is None]
        if missing:
            log.warning(f"Checkout rejected: unknown products {missing}.")
            raise InvalidInput("Cart contains unknown products", details={"productIds": missing})
