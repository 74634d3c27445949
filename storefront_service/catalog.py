"""
catalog.py — Product Catalog Access

The catalog is owned by the relational product store. The checkout flow only
reads from it: the cart snapshots name and price of a product when it is added,
and order creation checks that every submitted product still exists.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from .models import Product


class CatalogStore(ABC):
    """Read interface of the product store."""

    @abstractmethod
    def get_product(self, product_id: str) -> Optional[Product]:
        """Return the product with the given id, or None."""

    @abstractmethod
    def list_products(self) -> List[Product]:
        """Return all products, newest first."""


class InMemoryCatalog(CatalogStore):
    """
    Catalog held in process memory.

    Used for local runs and tests; production deployments plug in the relational store.
    """

    def __init__(self, products: Optional[Iterable[Product]] = None):
        self._products: Dict[str, Product] = {}
        for product in products or ():
            self.add(product)

    def add(self, product: Product) -> Product:
        self._products[product.id] = product
        return product

    def get_product(self, product_id: str) -> Optional[Product]:
        return self._products.get(str(product_id))

    def list_products(self) -> List[Product]:
        return sorted(self._products.values(), key=lambda p: p.createdAt, reverse=True)


_SAMPLE_PRODUCTS = [
    ("Classic White T-Shirt",
     "A comfortable and versatile white cotton t-shirt perfect for everyday wear.",
     "249000", "https://images.unsplash.com/photo-1521572163474-6864f9cf17ab?w=500&h=500&fit=crop"),
    ("Denim Blue Jeans",
     "Classic blue denim jeans with a modern fit.",
     "799000", "https://images.unsplash.com/photo-1542272604-787c3835535d?w=500&h=500&fit=crop"),
    ("Black Leather Jacket",
     "Premium black leather jacket with a timeless design.",
     "1999000", "https://images.unsplash.com/photo-1551028719-00167b16eac5?w=500&h=500&fit=crop"),
    ("Red Summer Dress",
     "Elegant red summer dress perfect for warm weather.",
     "899000", "https://images.unsplash.com/photo-1595777457583-95e059d581b8?w=500&h=500&fit=crop"),
    ("White Sneakers",
     "Comfortable white sneakers with modern design.",
     "1299000", "https://images.unsplash.com/photo-1549298916-b41d501d3772?w=500&h=500&fit=crop"),
    ("Gray Hoodie",
     "Soft and cozy gray hoodie with a relaxed fit.",
     "599000", "https://images.unsplash.com/photo-1556821840-3a63f95609a7?w=500&h=500&fit=crop"),
]


def seeded_catalog() -> InMemoryCatalog:
    """Builds a catalog with the sample products, ids "1" to "6" in insertion order."""
    base = datetime.now(timezone.utc)
    products = []
    for index, (name, description, price, image) in enumerate(_SAMPLE_PRODUCTS, start=1):
        created = base + timedelta(seconds=index)
        products.append(Product(
            id=str(index),
            name=name,
            description=description,
            price=Decimal(price),
            image=image,
            createdAt=created,
            updatedAt=created,
        ))
    return InMemoryCatalog(products)
