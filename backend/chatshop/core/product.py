"""Product — catalog entry and the field rules admin commands must satisfy.

Invariants:
    - id is a lowercase slug ([a-z0-9-]+), unique within a catalog
    - price_usd > 0, stock >= 0
    - Products are immutable values; catalogs swap whole entries on edit
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from chatshop.core.domain_types import ProductId

PRODUCT_ID_PATTERN = re.compile(r"^[a-z0-9-]+$")

EDITABLE_FIELDS = ("name", "price", "description")


@dataclass(frozen=True)
class Product:
    id: ProductId
    name: str
    price_usd: Decimal
    stock: int = 0
    category: str = "general"
    description: str = ""

    @property
    def in_stock(self) -> bool:
        return self.stock > 0


def is_valid_product_id(product_id: str) -> bool:
    return bool(PRODUCT_ID_PATTERN.match(product_id))


def parse_price(raw: str) -> Decimal | None:
    """Parse a positive USD price; None when malformed or not positive."""
    try:
        price = Decimal(raw.strip())
    except InvalidOperation:
        return None
    if not price.is_finite() or price <= 0:
        return None
    return price


def parse_quantity(raw: str) -> int | None:
    """Parse a non-negative integer quantity; None when malformed."""
    raw = raw.strip()
    if not raw.isdigit():
        return None
    return int(raw)
