"""Container — wires Settings into a ShopContext and a ConversationEngine.

Invariants:
    - The only place that reads Settings to build collaborators
    - Everything built here is released by ShopRuntime.aclose()

Design Decisions:
    - Plain factory functions over a DI framework: the graph is small and explicit
    - AI assistant is built only when enabled and a key is configured; otherwise
      ShopContext.assistant stays None and AI features report "disabled"
"""

import logging
from dataclasses import dataclass
from zoneinfo import ZoneInfo

from chatshop.config import Settings
from chatshop.core.abuse_guard import AbuseGuard, GuardLimits
from chatshop.core.runtime_settings import RuntimeSettings
from chatshop.core.ttl_cache import TTLCache
from chatshop.infrastructure.admin_allowlist import StaticAdminAllowlist
from chatshop.infrastructure.anthropic_client import ResilientAnthropicClient
from chatshop.infrastructure.audit_repository import SqlAuditSink
from chatshop.infrastructure.database import DatabaseSessionManager
from chatshop.infrastructure.delivery_vault import InMemoryDeliveryVault
from chatshop.infrastructure.memory_catalog import InMemoryProductCatalog
from chatshop.infrastructure.memory_session_store import InMemorySessionStore
from chatshop.infrastructure.payment_gateway import (
    ResilientPaymentGateway, XenditGateway,
)
from chatshop.services.audit_trail import AuditTrail
from chatshop.services.cached_reads import CachedCatalog, CachedSettings
from chatshop.services.conversation_engine import ConversationEngine
from chatshop.services.product_assistant import AnthropicProductAssistant
from chatshop.services.shop_context import PaymentAccount, ShopContext

logger = logging.getLogger(__name__)


@dataclass
class ShopRuntime:
    """Engine plus the resources that need closing on shutdown."""
    engine: ConversationEngine
    http_gateway: XenditGateway

    @property
    def ctx(self) -> ShopContext:
        return self.engine.ctx

    async def aclose(self) -> None:
        await self.ctx.audit.drain()
        await self.http_gateway.aclose()


def build_guard(settings: Settings) -> AbuseGuard:
    return AbuseGuard(GuardLimits(
        message_limit=settings.message_limit,
        message_window_seconds=settings.message_window_seconds,
        order_limit=settings.order_limit_per_day,
        error_threshold=settings.error_threshold,
        error_cooldown_seconds=settings.error_cooldown_seconds,
    ))


def build_assistant(settings: Settings) -> AnthropicProductAssistant | None:
    if not settings.ai_enabled or settings.anthropic_api_key.endswith("placeholder"):
        return None
    client = ResilientAnthropicClient(
        api_key=settings.anthropic_api_key,
        max_retries=settings.anthropic_max_retries,
        base_delay_ms=settings.anthropic_base_delay_ms,
        max_delay_ms=settings.anthropic_max_delay_ms,
        timeout_seconds=settings.anthropic_timeout_seconds,
    )
    return AnthropicProductAssistant(
        client, settings.anthropic_model, settings.anthropic_max_tokens,
    )


def build_runtime(settings: Settings, manager: DatabaseSessionManager) -> ShopRuntime:
    cache = TTLCache()
    http_gateway = XenditGateway(
        settings.gateway_base_url,
        settings.gateway_secret_key,
        settings.gateway_timeout_seconds,
    )
    gateway = ResilientPaymentGateway(
        http_gateway,
        timeout_seconds=settings.gateway_timeout_seconds,
        max_retries=settings.gateway_max_retries,
        retry_interval_seconds=settings.gateway_retry_interval_seconds,
    )
    vault = (
        InMemoryDeliveryVault.from_directory(settings.delivery_codes_dir)
        if settings.delivery_codes_dir else InMemoryDeliveryVault()
    )
    ctx = ShopContext(
        sessions=InMemorySessionStore(),
        catalog=CachedCatalog(
            InMemoryProductCatalog(), cache, settings.cache_products_ttl_seconds,
        ),
        settings=CachedSettings(
            RuntimeSettings(settings.runtime_seed()), cache,
            settings.cache_settings_ttl_seconds,
        ),
        guard=build_guard(settings),
        audit=AuditTrail(SqlAuditSink(manager)),
        gateway=gateway,
        invoices=gateway,
        vault=vault,
        allowlist=StaticAdminAllowlist(settings.admin_numbers),
        cache=cache,
        assistant=build_assistant(settings),
        payment_accounts={
            key: PaymentAccount(account.number, account.holder)
            for key, account in settings.payment_accounts.items()
        },
        support_contact=settings.support_contact,
        local_timezone=ZoneInfo(settings.shop_timezone),
    )
    logger.info(
        "Shop runtime built",
        extra={"event": "startup"},
    )
    return ShopRuntime(engine=ConversationEngine(ctx), http_gateway=http_gateway)
