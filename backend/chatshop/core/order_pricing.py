"""Order Pricing — pure checkout math: stock validation, totals, IDR conversion, order ids.

Invariants:
    - total_usd is the sum of frozen cart prices (never re-read from the catalog)
    - total_idr = round-half-up(total_usd * rate) as int
    - Any cart line without enough stock rejects the whole checkout
    - Order ids from one allocator never repeat: ORD-<epoch-ms>-<suffix>,
      with the millisecond part bumped forward when two allocations collide

Design Decisions:
    - Decimal money: 5 + 2 at 15800 must be exactly 110600, not 110599.99…
    - Stock levels passed in as a dict: the shell does the async catalog reads,
      this module only decides
"""

import re
import time
from collections import Counter
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from chatshop.core import format_messages
from chatshop.core.domain_types import OrderId, ProductId
from chatshop.core.errors import ConsistencyError, ErrorContext
from chatshop.core.result import Err, Ok, Result
from chatshop.core.session_state import CartItem


@dataclass(frozen=True)
class CheckoutQuote:
    total_usd: Decimal
    total_idr: int
    item_count: int


def cart_total_usd(cart: Sequence[CartItem]) -> Decimal:
    return sum((item.unit_price_usd for item in cart), Decimal("0"))


def convert_to_idr(total_usd: Decimal, rate: int) -> int:
    return int((total_usd * rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def required_quantities(cart: Sequence[CartItem]) -> Counter[ProductId]:
    return Counter(item.product_id for item in cart)


def find_unavailable(
    cart: Sequence[CartItem], stock_levels: Mapping[str, int | None],
) -> list[str]:
    """Names of cart products whose stock cannot cover the cart (None = removed)."""
    unavailable: list[str] = []
    names = {item.product_id: item.name for item in cart}
    for product_id, needed in required_quantities(cart).items():
        stock = stock_levels.get(product_id)
        if stock is None or stock < needed:
            unavailable.append(names[product_id])
    return unavailable


def quote_checkout(
    cart: Sequence[CartItem],
    stock_levels: Mapping[str, int | None],
    rate: int,
) -> Result[CheckoutQuote]:
    """Validate stock and price the cart. No partial checkout."""
    unavailable = find_unavailable(cart, stock_levels)
    if unavailable:
        return Err(ConsistencyError(
            format_messages.out_of_stock(unavailable),
            "OUT_OF_STOCK",
            ErrorContext(debug_info={"unavailable": unavailable}),
        ))
    total_usd = cart_total_usd(cart)
    return Ok(CheckoutQuote(
        total_usd=total_usd,
        total_idr=convert_to_idr(total_usd, rate),
        item_count=len(cart),
    ))


def customer_suffix(customer_id: str) -> str:
    """Last four alphanumerics of the customer's number part, zero-padded."""
    local_part = customer_id.split("@", 1)[0]
    cleaned = re.sub(r"[^A-Za-z0-9]", "", local_part)
    return cleaned[-4:].rjust(4, "0")


class OrderIdAllocator:
    """Issues process-unique order ids; the timestamp part is strictly increasing."""

    def __init__(self, clock_ms: Callable[[], int] | None = None):
        self._clock_ms = clock_ms or (lambda: time.time_ns() // 1_000_000)
        self._last_ms = 0

    def allocate(self, customer_id: str) -> OrderId:
        ms = max(self._clock_ms(), self._last_ms + 1)
        self._last_ms = ms
        return OrderId(f"ORD-{ms}-{customer_suffix(customer_id)}")
