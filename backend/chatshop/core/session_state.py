"""Session State — per-customer conversation state, pure dataclasses.

Invariants:
    - CartItem is a price snapshot taken at add time; catalog edits never touch it
    - order_id is assigned once per checkout cycle and only replaced by the next checkout
    - step is stored raw (str) so a corrupt value can be observed and repaired
      by the conversation engine instead of crashing the store

Design Decisions:
    - Dataclass with computed properties: pure, deterministic, testable without mocks
    - Session snapshots are copied out of the store (snapshot()), never shared by reference
"""

import time
from dataclasses import dataclass, field, replace
from decimal import Decimal

from chatshop.core.domain_types import (
    BankCode, CustomerId, OrderId, PaymentKind, ProductId, Step,
)


@dataclass(frozen=True)
class CartItem:
    """Frozen line item — product reference plus the price at add time."""
    product_id: ProductId
    name: str
    unit_price_usd: Decimal


@dataclass(frozen=True)
class PaymentMethod:
    """Payment choice attached to the current order."""
    kind: PaymentKind
    invoice_id: str | None = None
    bank_code: BankCode | None = None

    @property
    def has_invoice(self) -> bool:
        return bool(self.invoice_id)


@dataclass
class Session:
    """Per-customer conversation state — owned by a SessionStore."""

    customer_id: CustomerId
    step: str = Step.MENU.value
    cart: list[CartItem] = field(default_factory=list)
    order_id: OrderId | None = None
    payment_method: PaymentMethod | None = None
    last_activity: float = field(default_factory=time.time)

    @property
    def total_usd(self) -> Decimal:
        return sum((item.unit_price_usd for item in self.cart), Decimal("0"))

    @property
    def item_count(self) -> int:
        return len(self.cart)

    def snapshot(self) -> "Session":
        """Detached copy — mutating it never affects the stored session."""
        return replace(self, cart=list(self.cart))
