"""Boundary Protocols — contracts between the conversation core and its collaborators.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by the shell via constructor injection
    - SessionStore.compare_and_set_step and ProductCatalog.decrement_stock are atomic
      relative to every other call on the same store/catalog

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
    - Async in Protocol: boundary methods are async because implementations do IO,
      while the pure core functions that use their results are not
"""

from datetime import datetime
from typing import Protocol

from chatshop.core.audit_record import AuditRecord, OrderTotals
from chatshop.core.domain_types import (
    CustomerId, OrderId, PaymentStatus, ProductId, Step,
)
from chatshop.core.product import Product
from chatshop.core.session_state import CartItem, PaymentMethod, Session


class SessionStore(Protocol):
    """Per-customer conversation state — sessions are created on first access."""
    async def get_session(self, customer_id: CustomerId) -> Session: ...
    async def get_step(self, customer_id: CustomerId) -> str: ...
    async def set_step(self, customer_id: CustomerId, step: Step) -> None: ...
    async def compare_and_set_step(
        self, customer_id: CustomerId, expected: Step, new: Step,
    ) -> bool: ...
    async def get_cart(self, customer_id: CustomerId) -> list[CartItem]: ...
    async def add_to_cart(self, customer_id: CustomerId, item: CartItem) -> int: ...
    async def clear_cart(self, customer_id: CustomerId) -> None: ...
    async def get_order_id(self, customer_id: CustomerId) -> OrderId | None: ...
    async def set_order_id(self, customer_id: CustomerId, order_id: OrderId) -> None: ...
    async def get_payment_method(
        self, customer_id: CustomerId,
    ) -> PaymentMethod | None: ...
    async def set_payment_method(
        self, customer_id: CustomerId, method: PaymentMethod | None,
    ) -> None: ...
    async def find_by_order_id(self, order_id: OrderId) -> Session | None: ...
    async def list_customer_ids(self) -> list[CustomerId]: ...
    async def count(self) -> int: ...
    async def expire_inactive(self, max_idle_seconds: float) -> int: ...


class ProductCatalog(Protocol):
    """Product catalog — admin-only mutations, atomic stock decrement."""
    async def get_by_id(self, product_id: ProductId) -> Product | None: ...
    async def get_all(self) -> list[Product]: ...
    async def is_in_stock(self, product_id: ProductId) -> bool: ...
    async def decrement_stock(self, product_id: ProductId, quantity: int = 1) -> bool: ...
    async def set_stock(self, product_id: ProductId, quantity: int) -> Product | None: ...
    async def add(self, product: Product) -> bool: ...
    async def update(
        self, product_id: ProductId, field: str, value: str,
    ) -> Product | None: ...
    async def remove(self, product_id: ProductId) -> bool: ...


class PaymentGateway(Protocol):
    """Invoice status lookup. Raises ExternalServiceError on failure."""
    async def check_status(self, invoice_id: str) -> PaymentStatus: ...


class InvoiceCreator(Protocol):
    """QRIS invoice creation. Returns the invoice id; raises ExternalServiceError."""
    async def create_qris_invoice(self, order_id: OrderId, amount_idr: int) -> str: ...


class DeliveryVault(Protocol):
    """Deliverable codes per product. take_codes is all-or-nothing."""
    async def take_codes(
        self, product_ids: list[ProductId],
    ) -> list[str] | None: ...
    async def available(self, product_id: ProductId) -> int: ...


class AuditSink(Protocol):
    """Append-only event log with indexed read-back for reporting."""
    async def append(self, record: AuditRecord) -> None: ...
    async def recent_orders(
        self, customer_id: CustomerId, limit: int,
    ) -> list[AuditRecord]: ...
    async def order_totals_since(self, since: datetime) -> OrderTotals: ...


class AdminAllowlist(Protocol):
    def is_admin(self, customer_id: str) -> bool: ...
    def admin_ids(self) -> list[str]: ...


class ProductAssistant(Protocol):
    """AI helper for browsing questions and product copy. Raises ExternalServiceError."""
    async def answer_question(self, question: str, products: list[Product]) -> str: ...
    async def generate_description(self, product: Product) -> str: ...
