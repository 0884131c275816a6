"""Shop Context — the collaborators every conversation handler shares.

Invariants:
    - Built once at startup (infrastructure/container.py) and passed by reference
    - No module-level singletons: handlers reach services only through this object

Design Decisions:
    - Plain dataclass over a DI framework: every dependency visible in one place
"""

import time
from dataclasses import dataclass, field
from datetime import timezone, tzinfo

from chatshop.core.abuse_guard import AbuseGuard
from chatshop.core.order_pricing import OrderIdAllocator
from chatshop.core.repository_protocols import (
    AdminAllowlist, DeliveryVault, InvoiceCreator, PaymentGateway,
    ProductAssistant, SessionStore,
)
from chatshop.core.ttl_cache import TTLCache
from chatshop.services.audit_trail import AuditTrail
from chatshop.services.cached_reads import CachedCatalog, CachedSettings


@dataclass(frozen=True)
class PaymentAccount:
    """Destination for a manual e-wallet or bank transfer."""
    number: str
    holder: str


@dataclass
class ShopContext:
    sessions: SessionStore
    catalog: CachedCatalog
    settings: CachedSettings
    guard: AbuseGuard
    audit: AuditTrail
    gateway: PaymentGateway
    invoices: InvoiceCreator
    vault: DeliveryVault
    allowlist: AdminAllowlist
    cache: TTLCache
    order_ids: OrderIdAllocator = field(default_factory=OrderIdAllocator)
    assistant: ProductAssistant | None = None
    payment_accounts: dict[str, PaymentAccount] = field(default_factory=dict)
    support_contact: str = "the admin on this number"
    started_at: float = field(default_factory=time.monotonic)
    local_timezone: tzinfo = timezone.utc

    @property
    def rate(self) -> int:
        return self.settings.get("usd_to_idr_rate")

    @property
    def shop_name(self) -> str:
        return self.settings.get("shop_name")

    @property
    def ai_enabled(self) -> bool:
        return self.assistant is not None and self.settings.get("ai_enabled")
