"""Admin Handlers — authorization, command parsing and every admin command.

Invariants:
    - Authorization is checked before parsing; an unauthorized attempt records a
      security event naming only the command word, and gets the generic denial
    - Malformed commands reply with usage and change nothing
    - Catalog and settings mutations go through CachedCatalog / CachedSettings,
      which invalidate the affected cache keys
    - Unexpected failures inside an admin command are shown to the admin
      (admins may see details; customers never do)
    - /stats revenue sums delivered orders; "Today" starts at local midnight in
      ctx.local_timezone

Design Decisions:
    - `match` over the parsed command dataclass: every command visible in one place
    - /approve delegates to OrderApproval (services/approve_order.py)
"""

import logging
import time
from datetime import datetime, timedelta, timezone, tzinfo

from chatshop.core import format_messages
from chatshop.core.admin_commands import (
    AddProduct, ApproveOrder, Broadcast, EditProduct, GenerateDescription,
    ListStock, RemoveProduct, SetStock, ShowAdminHelp, ShowSettings, ShowStats,
    ShowStatus, UpdateSetting, command_name, parse_admin_command,
)
from chatshop.core.domain_types import AuditEventType, SecurityReason
from chatshop.core.errors import AuthorizationError, ChatShopError
from chatshop.core.responses import BroadcastDirective, Reply, TextReply
from chatshop.core.result import Err, Ok
from chatshop.core.runtime_settings import SETTING_TYPES
from chatshop.services.approve_order import OrderApproval
from chatshop.services.shop_context import ShopContext

logger = logging.getLogger(__name__)

# Runtime settings that retune the abuse guard
_GUARD_SETTINGS = {
    "message_limit": "message_limit",
    "order_limit_per_day": "order_limit",
}


class AdminHandlers:
    def __init__(self, ctx: ShopContext, approval: OrderApproval):
        self.ctx = ctx
        self.approval = approval

    async def handle(self, admin_id: str, text: str) -> Reply:
        name = command_name(text)
        if not self.ctx.allowlist.is_admin(admin_id):
            denied = AuthorizationError()
            self.ctx.audit.security(
                admin_id, SecurityReason.UNAUTHORIZED_ADMIN, command=name,
            )
            return TextReply(denied.message)

        match parse_admin_command(text):
            case Err(error=error):
                return TextReply(error.message)
            case Ok(value=command):
                pass

        logger.info(
            f"Admin command {name}",
            extra={"customer_id": admin_id, "command": name},
        )
        try:
            return await self._run(admin_id, command)
        except ChatShopError as e:
            logger.error(
                f"Admin command failed: {e.message}",
                extra={"customer_id": admin_id, "command": name, "error_code": e.code},
            )
            return TextReply(format_messages.admin_command_failed(e.message))
        except Exception as e:
            logger.error(
                f"Admin command crashed: {e}",
                extra={"customer_id": admin_id, "command": name},
                exc_info=True,
            )
            return TextReply(format_messages.admin_command_failed(
                f"{type(e).__name__}: {e}",
            ))

    async def _run(self, admin_id: str, command) -> Reply:
        match command:
            case ApproveOrder(order_id=order_id):
                return await self.approval.approve(admin_id, order_id)
            case ListStock():
                return await self.list_stock()
            case SetStock(product_id=product_id, quantity=quantity):
                return await self.set_stock(admin_id, product_id, quantity)
            case AddProduct(product=product):
                return await self.add_product(admin_id, product)
            case RemoveProduct(product_id=product_id):
                return await self.remove_product(admin_id, product_id)
            case EditProduct(product_id=product_id, field=field, value=value):
                return await self.edit_product(admin_id, product_id, field, value)
            case ShowSettings(help=True):
                return TextReply(format_messages.settings_help(SETTING_TYPES))
            case ShowSettings():
                return TextReply(format_messages.settings_list(self.ctx.settings.snapshot()))
            case UpdateSetting(key=key, value=value):
                return self.update_setting(admin_id, key, value)
            case Broadcast(message=message):
                return await self.broadcast(admin_id, message)
            case ShowStats():
                return await self.stats()
            case ShowStatus():
                return await self.status()
            case GenerateDescription(product_id=product_id):
                return await self.generate_description(product_id)
            case ShowAdminHelp():
                return TextReply(format_messages.admin_help())

    # ─── Catalog ─────────────────────────────────────────────────

    async def list_stock(self) -> Reply:
        products = await self.ctx.catalog.get_all()
        return TextReply(format_messages.stock_list(
            products, self.ctx.settings.get("low_stock_threshold"),
        ))

    async def set_stock(self, admin_id: str, product_id: str, quantity: int) -> Reply:
        before = await self.ctx.catalog.get_fresh(product_id)
        if before is None:
            return TextReply(format_messages.product_not_found(product_id))
        updated = await self.ctx.catalog.set_stock(product_id, quantity)
        self._audit_action(admin_id, "set_stock", product_id=product_id,
                           previous=before.stock, stock=quantity)
        return TextReply(format_messages.stock_updated(updated, before.stock))

    async def add_product(self, admin_id: str, product) -> Reply:
        if not await self.ctx.catalog.add(product):
            return TextReply(format_messages.product_exists(product.id))
        self._audit_action(admin_id, "add_product", product_id=product.id)
        return TextReply(format_messages.product_created(product))

    async def remove_product(self, admin_id: str, product_id: str) -> Reply:
        if not await self.ctx.catalog.remove(product_id):
            return TextReply(format_messages.product_not_found(product_id))
        self._audit_action(admin_id, "remove_product", product_id=product_id)
        return TextReply(format_messages.product_removed(product_id))

    async def edit_product(
        self, admin_id: str, product_id: str, field: str, value: str,
    ) -> Reply:
        updated = await self.ctx.catalog.update(product_id, field, value)
        if updated is None:
            return TextReply(format_messages.product_not_found(product_id))
        self._audit_action(admin_id, "edit_product", product_id=product_id,
                           field=field, value=value)
        return TextReply(format_messages.product_updated(updated, field))

    # ─── Settings & broadcast ────────────────────────────────────

    def update_setting(self, admin_id: str, key: str, value: str) -> Reply:
        match self.ctx.settings.update(key, value):
            case Err(error=error):
                return TextReply(error.message)
            case Ok(value=change):
                guard_field = _GUARD_SETTINGS.get(change.key)
                if guard_field:
                    self.ctx.guard.update_limits(**{guard_field: change.new_value})
                self._audit_action(admin_id, "update_setting", key=change.key,
                                   old=change.old_value, new=change.new_value)
                return TextReply(format_messages.setting_updated(
                    change.key, change.old_value, change.new_value,
                ))

    async def broadcast(self, admin_id: str, message: str) -> Reply:
        recipients = tuple(
            cid for cid in await self.ctx.sessions.list_customer_ids()
            if not self.ctx.allowlist.is_admin(cid)
        )
        self._audit_action(admin_id, "broadcast", recipients=len(recipients))
        return BroadcastDirective(
            message=format_messages.broadcast_message(self.ctx.shop_name, message),
            recipients=recipients,
        )

    # ─── Reporting ───────────────────────────────────────────────

    async def stats(self) -> Reply:
        # deliveries from a just-finished /approve are still being written
        await self.ctx.audit.drain()
        now = datetime.now(timezone.utc)
        windows = []
        for label, since in (
            ("Today", local_day_start(now, self.ctx.local_timezone)),
            ("Last 7 days", now - timedelta(days=7)),
            ("Last 30 days", now - timedelta(days=30)),
        ):
            totals = await self.ctx.audit.sink.order_totals_since(since)
            windows.append((label, totals))
        return TextReply(format_messages.stats_report(
            await self.ctx.sessions.count(), windows,
        ))

    async def status(self) -> Reply:
        cache_stats = self.ctx.cache.stats()
        return TextReply(format_messages.status_report(
            uptime_seconds=int(time.monotonic() - self.ctx.started_at),
            sessions=await self.ctx.sessions.count(),
            products=len(await self.ctx.catalog.get_all()),
            cache_entries=cache_stats.entries,
            cache_hit_rate=cache_stats.hit_rate,
            pending_audit_writes=self.ctx.audit.pending,
        ))

    async def generate_description(self, product_id: str) -> Reply:
        if not self.ctx.ai_enabled:
            return TextReply(format_messages.ai_disabled())
        product = await self.ctx.catalog.get_by_id(product_id)
        if product is None:
            return TextReply(format_messages.product_not_found(product_id))
        text = await self.ctx.assistant.generate_description(product)
        return TextReply(format_messages.generated_description(product, text))

    def _audit_action(self, admin_id: str, action: str, **metadata) -> None:
        self.ctx.audit.record(
            AuditEventType.ADMIN_ACTION, admin_id, action=action, **metadata,
        )


def local_day_start(now: datetime, tz: tzinfo) -> datetime:
    """Midnight of the shop's current local day, as an aware datetime."""
    return now.astimezone(tz).replace(hour=0, minute=0, second=0, microsecond=0)
