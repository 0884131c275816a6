"""In-Memory Product Catalog — ProductCatalog implementation for a single process.

Invariants:
    - Stock never goes below zero: decrement_stock is compare-and-decrement under a lock
    - Iteration order is insertion order (the resolver's tie-break depends on it)
    - Product ids are unique; add() rejects duplicates

Design Decisions:
    - Seeded from DEFAULT_PRODUCTS at startup; persistence of edits is out of scope
    - Edits replace the frozen Product value (dataclasses.replace), never mutate it
"""

import asyncio
import logging
from dataclasses import replace
from decimal import Decimal

from chatshop.core.domain_types import ProductId
from chatshop.core.product import EDITABLE_FIELDS, Product, parse_price

logger = logging.getLogger(__name__)

DEFAULT_PRODUCTS: tuple[Product, ...] = (
    Product(ProductId("netflix"), "Netflix Premium (1 Month)", Decimal("1.00"),
            category="premium", description="4K UHD, 4 screens"),
    Product(ProductId("spotify"), "Spotify Premium (1 Month)", Decimal("1.00"),
            category="premium", description="Ad-free music, offline downloads"),
    Product(ProductId("youtube"), "YouTube Premium (1 Month)", Decimal("1.00"),
            category="premium", description="Ad-free videos, background play"),
    Product(ProductId("disney"), "Disney+ Hotstar (1 Month)", Decimal("1.00"),
            category="premium", description="Disney, Marvel, Star Wars, Pixar"),
    Product(ProductId("vcc-basic"), "Virtual Credit Card - Basic", Decimal("1.00"),
            category="vcc", description="Good for trials and verification"),
    Product(ProductId("vcc-standard"), "Virtual Credit Card - Standard", Decimal("2.00"),
            category="vcc", description="Higher limit, reusable"),
)


class InMemoryProductCatalog:
    """Dict-backed catalog keyed by product id."""

    def __init__(self, products: tuple[Product, ...] | list[Product] = DEFAULT_PRODUCTS):
        self._products: dict[str, Product] = {p.id: p for p in products}
        self._lock = asyncio.Lock()

    async def get_by_id(self, product_id: ProductId) -> Product | None:
        return self._products.get(product_id)

    async def get_all(self) -> list[Product]:
        return list(self._products.values())

    async def is_in_stock(self, product_id: ProductId) -> bool:
        product = self._products.get(product_id)
        return product is not None and product.in_stock

    async def decrement_stock(self, product_id: ProductId, quantity: int = 1) -> bool:
        """Subtract quantity when stock covers it. False (and no change) otherwise."""
        async with self._lock:
            product = self._products.get(product_id)
            if product is None or product.stock < quantity:
                logger.warning(
                    f"Stock decrement refused for {product_id}",
                    extra={"event": "stock_floor"},
                )
                return False
            self._products[product_id] = replace(product, stock=product.stock - quantity)
            return True

    async def set_stock(self, product_id: ProductId, quantity: int) -> Product | None:
        if quantity < 0:
            raise ValueError("Stock cannot be negative")
        async with self._lock:
            product = self._products.get(product_id)
            if product is None:
                return None
            updated = replace(product, stock=quantity)
            self._products[product_id] = updated
            return updated

    async def add(self, product: Product) -> bool:
        async with self._lock:
            if product.id in self._products:
                return False
            self._products[product.id] = product
            return True

    async def update(
        self, product_id: ProductId, field: str, value: str,
    ) -> Product | None:
        if field not in EDITABLE_FIELDS:
            raise ValueError(f"Field '{field}' is not editable")
        async with self._lock:
            product = self._products.get(product_id)
            if product is None:
                return None
            match field:
                case "price":
                    price = parse_price(value)
                    if price is None:
                        raise ValueError(f"Invalid price: {value}")
                    updated = replace(product, price_usd=price)
                case "name":
                    updated = replace(product, name=value)
                case _:
                    updated = replace(product, description=value)
            self._products[product_id] = updated
            return updated

    async def remove(self, product_id: ProductId) -> bool:
        async with self._lock:
            return self._products.pop(product_id, None) is not None
