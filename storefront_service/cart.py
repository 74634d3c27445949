"""
cart.py — Client-Held Shopping Cart

The cart is not persisted on the server. `CartHolder` is the aggregate a single
client session owns; the server side only contributes `snapshot_line()`, which
freezes a catalog product into a cart line at add-time.
"""

import logging
import time
from typing import List

from .catalog import CatalogStore
from .errors import InvalidInput, ProductNotFound
from .models import Cart, CartItem, CartSnapshot, Product

log = logging.getLogger(__name__)


def snapshot_line(product: Product, quantity: int = 1) -> CartItem:
    """
    Builds a cart line from the current catalog state of a product.

    Later price changes in the catalog do not affect the returned line.

    Raises:
        InvalidInput: If quantity is below 1.
    """
    if quantity < 1:
        raise InvalidInput("Quantity must be at least 1")
    return CartItem(
        id=f"{product.id}-{int(time.time() * 1000)}",
        productId=product.id,
        name=product.name,
        price=product.price,
        image=product.image,
        quantity=quantity,
    )


class CartHolder:
    """
    In-memory cart owned by one client session.

    Every mutation returns the updated aggregate {items, total, itemCount}.
    """

    def __init__(self, catalog: CatalogStore):
        self.catalog = catalog
        self._items: List[CartItem] = []

    @property
    def cart(self) -> Cart:
        return Cart(items=[item.model_copy() for item in self._items])

    def add(self, product_id: str, quantity: int = 1) -> Cart:
        """
        Adds a product, summing quantities when it is already in the cart.

        Raises:
            ProductNotFound: If the catalog does not know the product.
            InvalidInput: If quantity is below 1.
        """
        product = self.catalog.get_product(str(product_id))
        if product is None:
            log.warning(f"[Cart] Product {product_id} not found.")
            raise ProductNotFound()

        existing = self._find(product.id)
        if existing is not None:
            if quantity < 1:
                raise InvalidInput("Quantity must be at least 1")
            existing.quantity += quantity
        else:
            self._items.append(snapshot_line(product, quantity))
        return self.cart

    def update(self, product_id: str, quantity: int) -> Cart:
        if quantity < 1:
            return self.remove(product_id)
        existing = self._find(str(product_id))
        if existing is not None:
            existing.quantity = quantity
        return self.cart

    def remove(self, product_id: str) -> Cart:
        self._items = [item for item in self._items if item.productId != str(product_id)]
        return self.cart

    def clear(self) -> Cart:
        self._items = []
        return self.cart

    def snapshot(self) -> CartSnapshot:
        """Freezes the current lines and computed total for checkout."""
        cart = self.cart
        return CartSnapshot(items=cart.items, total=cart.total)

    def _find(self, product_id: str):
        for item in self._items:
            if item.productId == product_id:
                return item
        return None
