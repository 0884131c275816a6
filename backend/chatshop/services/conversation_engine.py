"""Conversation Engine — the message-processing boundary for every inbound message.

Invariants:
    - Guards run first, in order: error cooldown, then message rate; a rejection
      is audited as a security event before the reply is returned
    - Customer-facing work runs under the customer's lock (CustomerLocks);
      admin commands run outside it, since /approve takes the order owner's lock
    - The stored step is always one of the seven Step values after a message;
      a corrupt value is logged, audited (step_anomaly) and rewritten to menu
    - Unexpected exceptions never escape: they are logged with customer and step,
      audited, counted toward the error cooldown, and become a generic apology

Design Decisions:
    - Explicit dict dispatch (step -> handler, word -> global command), like the
      tool dispatch tables elsewhere: adding a step is one table entry
    - While awaiting admin approval, menu/cart reply with the pending notice
      instead of transitioning (the order would otherwise become unapprovable)
"""

import logging

from chatshop.core import format_messages, intents
from chatshop.core.admin_commands import is_admin_command
from chatshop.core.domain_types import AuditEventType, CustomerId, SecurityReason, Step
from chatshop.core.responses import Reply, TextReply
from chatshop.services.approve_order import OrderApproval
from chatshop.services.customer_locks import CustomerLocks
from chatshop.services.handle_admin import AdminHandlers
from chatshop.services.handle_checkout import CheckoutHandlers
from chatshop.services.handle_customer import CustomerHandlers
from chatshop.services.handle_payment import PaymentHandlers
from chatshop.services.shop_context import ShopContext

logger = logging.getLogger(__name__)


class ConversationEngine:
    """Routes one customer message to the handler for their current step."""

    def __init__(self, ctx: ShopContext, locks: CustomerLocks | None = None):
        self.ctx = ctx
        self.locks = locks or CustomerLocks()
        self.customer = CustomerHandlers(ctx)
        self.checkout = CheckoutHandlers(ctx)
        self.payment = PaymentHandlers(ctx)
        self.approval = OrderApproval(ctx, self.locks)
        self.admin = AdminHandlers(ctx, self.approval)

        self._step_handlers = {
            Step.MENU: self.customer.handle_menu,
            Step.BROWSING: self.customer.handle_browsing,
            Step.CHECKOUT: self.checkout.handle_checkout_step,
            Step.SELECT_PAYMENT: self.payment.handle_payment_selection,
            Step.SELECT_BANK: self.payment.handle_bank_choice,
            Step.AWAITING_PAYMENT: self.payment.handle_awaiting_payment,
            Step.AWAITING_ADMIN_APPROVAL: self.payment.handle_awaiting_approval,
        }
        self._global_commands = {
            **dict.fromkeys(intents.MENU_WORDS, self.customer.show_main_menu),
            **dict.fromkeys(intents.CART_WORDS, self.customer.show_cart),
            **dict.fromkeys(intents.HISTORY_WORDS, self.customer.show_history),
        }

    async def process_message(
        self, customer_id: str, text: str, has_media: bool = False,
    ) -> Reply:
        """Handle one inbound message and return the reply payload."""
        customer_id = CustomerId(customer_id)
        blocked = self._check_guards(customer_id)
        if blocked is not None:
            return blocked

        message = intents.sanitize_message(text or "")
        if not has_media and self._is_admin_path(message):
            return await self.admin.handle(customer_id, message)

        async with self.locks.for_customer(customer_id):
            return await self._process_locked(customer_id, message, has_media)

    async def sweep(self) -> dict[str, int]:
        """Periodic housekeeping: idle sessions, locks, guard windows, cache."""
        timeout_minutes = self.ctx.settings.get("session_timeout_minutes")
        expired = await self.ctx.sessions.expire_inactive(timeout_minutes * 60)
        live = set(await self.ctx.sessions.list_customer_ids())
        result = {
            "sessions_expired": expired,
            "locks_pruned": self.locks.prune(live),
            "guard_entries_removed": self.ctx.guard.cleanup(),
            "cache_entries_removed": self.ctx.cache.cleanup(),
        }
        logger.debug("Sweep finished", extra={"event": "sweep"})
        return result

    # ─── Internals ───────────────────────────────────────────────

    def _check_guards(self, customer_id: CustomerId) -> Reply | None:
        cooldown = self.ctx.guard.is_in_cooldown(customer_id)
        if cooldown.in_cooldown:
            self.ctx.audit.security(
                customer_id, SecurityReason.COOLDOWN,
                threshold=self.ctx.guard.limits.error_threshold,
                cooldown_seconds=self.ctx.guard.limits.error_cooldown_seconds,
                wait_seconds=cooldown.wait_seconds,
            )
            return TextReply(cooldown.message)

        decision = self.ctx.guard.can_send_message(customer_id)
        if not decision.allowed:
            self.ctx.audit.security(
                customer_id, decision.reason,
                limit=decision.limit, wait_seconds=decision.wait_seconds,
            )
            return TextReply(decision.message)
        return None

    @staticmethod
    def _is_admin_path(message: str) -> bool:
        return (
            is_admin_command(message)
            and message.lower() not in intents.HISTORY_WORDS
        )

    async def _process_locked(
        self, customer_id: CustomerId, message: str, has_media: bool,
    ) -> Reply:
        step = None
        try:
            if (
                self.ctx.settings.get("maintenance_mode")
                and not self.ctx.allowlist.is_admin(customer_id)
            ):
                return TextReply(format_messages.maintenance(
                    self.ctx.settings.get("maintenance_message"),
                ))

            step = await self._current_step(customer_id)
            reply = await self._route(customer_id, step, message, has_media)
        except Exception as e:
            return self._handle_failure(customer_id, step, e)
        self.ctx.guard.clear_errors(customer_id)
        return reply

    async def _route(
        self, customer_id: CustomerId, step: Step, message: str, has_media: bool,
    ) -> Reply:
        if has_media:
            return await self.payment.handle_payment_proof(customer_id, step)

        keyword = message.lower()
        command = self._global_commands.get(keyword)
        if command is not None:
            if (
                step is Step.AWAITING_ADMIN_APPROVAL
                and keyword not in intents.HISTORY_WORDS
            ):
                return await self.payment.handle_awaiting_approval(customer_id, keyword)
            return await command(customer_id, keyword)

        handler = self._step_handlers[step]
        # Browsing keeps the original case for resolver and AI fallback
        routed = message if step is Step.BROWSING else keyword
        return await handler(customer_id, routed)

    async def _current_step(self, customer_id: CustomerId) -> Step:
        raw = await self.ctx.sessions.get_step(customer_id)
        step = Step.parse(raw)
        if step is not None:
            return step
        logger.warning(
            f"Unknown step {raw!r}, resetting to menu",
            extra={"customer_id": customer_id, "step": str(raw)},
        )
        self.ctx.audit.security(
            customer_id, SecurityReason.STEP_ANOMALY, step=str(raw),
        )
        await self.ctx.sessions.set_step(customer_id, Step.MENU)
        return Step.MENU

    def _handle_failure(
        self, customer_id: CustomerId, step: Step | None, error: Exception,
    ) -> Reply:
        step_value = step.value if step else None
        logger.error(
            f"Message handling failed: {type(error).__name__}: {error}",
            extra={"customer_id": customer_id, "step": step_value},
            exc_info=True,
        )
        self.ctx.audit.record(
            AuditEventType.ERROR, customer_id,
            step=step_value, error_type=type(error).__name__,
        )
        if self.ctx.guard.record_error(customer_id):
            logger.warning(
                "Error cooldown started",
                extra={"customer_id": customer_id, "event": "cooldown"},
            )
        return TextReply(format_messages.generic_apology())
