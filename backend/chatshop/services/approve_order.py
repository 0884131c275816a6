"""Order Approval — admin approval, payment re-verification and product delivery.

Invariants:
    - Preconditions in order: order found, step is awaiting_admin_approval,
      gateway says SUCCEEDED (when an invoice is attached); first failure wins
    - The order is claimed by compare-and-set awaiting_admin_approval -> menu;
      only the claimant delivers, so two /approve calls deliver exactly once
    - Missing delivery content restores the step and touches neither stock nor cart
    - Stock is decremented once per delivered item and never below zero

Design Decisions:
    - Runs under the owning customer's lock (CustomerLocks), not the admin's:
      approval and the customer's own messages serialize on the same session
    - Re-reads the session after taking the lock; the pre-lock lookup only
      finds whose lock to take
"""

import logging

from chatshop.core import format_messages
from chatshop.core.domain_types import AuditEventType, CustomerId, OrderId, Step
from chatshop.core.enforce_approval import check_payment_verified, validate_approval
from chatshop.core.errors import ChatShopError, ExternalServiceError
from chatshop.core.order_pricing import convert_to_idr, required_quantities
from chatshop.core.responses import DeliveryAction, Reply, TextReply
from chatshop.core.session_state import Session
from chatshop.services.customer_locks import CustomerLocks
from chatshop.services.shop_context import ShopContext

logger = logging.getLogger(__name__)


class OrderApproval:
    def __init__(self, ctx: ShopContext, locks: CustomerLocks):
        self.ctx = ctx
        self.locks = locks

    async def approve(self, admin_id: str, order_id: OrderId) -> Reply:
        owner = await self.ctx.sessions.find_by_order_id(order_id)
        if owner is None:
            return self._reject(admin_id, validate_approval(None, order_id))
        async with self.locks.for_customer(owner.customer_id):
            return await self._approve_locked(admin_id, order_id)

    async def _approve_locked(self, admin_id: str, order_id: OrderId) -> Reply:
        session = await self.ctx.sessions.find_by_order_id(order_id)
        error = validate_approval(session, order_id)
        if error:
            return self._reject(admin_id, error)

        method = session.payment_method
        if method is not None and method.has_invoice:
            try:
                status = await self.ctx.gateway.check_status(method.invoice_id)
            except ExternalServiceError as e:
                logger.warning(
                    f"Approval payment check failed: {e.message}",
                    extra={"order_id": order_id, "error_code": e.code},
                )
                return TextReply(format_messages.payment_check_failed(order_id))
            error = check_payment_verified(status, order_id)
            if error:
                return self._reject(admin_id, error)

        customer_id = CustomerId(session.customer_id)
        claimed = await self.ctx.sessions.compare_and_set_step(
            customer_id, Step.AWAITING_ADMIN_APPROVAL, Step.MENU,
        )
        if not claimed:
            return TextReply(format_messages.order_not_pending(
                order_id, await self.ctx.sessions.get_step(customer_id),
            ))
        return await self._deliver(admin_id, session)

    async def _deliver(self, admin_id: str, session: Session) -> Reply:
        customer_id = CustomerId(session.customer_id)
        order_id = session.order_id
        product_ids = [item.product_id for item in session.cart]
        codes = await self.ctx.vault.take_codes(product_ids)
        if codes is None:
            await self.ctx.sessions.compare_and_set_step(
                customer_id, Step.MENU, Step.AWAITING_ADMIN_APPROVAL,
            )
            missing = await self._missing_products(session)
            logger.error(
                "Delivery aborted: vault short",
                extra={"customer_id": customer_id, "order_id": order_id,
                       "error_code": "DELIVERY_CONTENT_MISSING"},
            )
            return TextReply(format_messages.delivery_failed(order_id, missing))

        for product_id in product_ids:
            if not await self.ctx.catalog.decrement_stock(product_id):
                logger.warning(
                    f"Stock already zero for delivered product {product_id}",
                    extra={"order_id": order_id, "event": "stock_floor"},
                )
        await self.ctx.sessions.clear_cart(customer_id)
        await self.ctx.sessions.set_step(customer_id, Step.MENU)

        self.ctx.audit.record(
            AuditEventType.ADMIN_ACTION, admin_id,
            order_id=order_id, action="approve_order", customer=customer_id,
        )
        self.ctx.audit.record(
            AuditEventType.PRODUCTS_DELIVERED, customer_id,
            order_id=order_id,
            total_idr=convert_to_idr(session.total_usd, self.ctx.rate),
            products=product_ids,
        )
        logger.info(
            "Order approved and delivered",
            extra={"customer_id": customer_id, "order_id": order_id,
                   "event": AuditEventType.PRODUCTS_DELIVERED.value},
        )
        deliveries = [(item.name, code) for item, code in zip(session.cart, codes)]
        return DeliveryAction(
            message=format_messages.approval_success(order_id, customer_id, len(codes)),
            customer_id=customer_id,
            customer_message=format_messages.delivery_message(order_id, deliveries),
        )

    async def _missing_products(self, session: Session) -> list[str]:
        names = {item.product_id: item.name for item in session.cart}
        missing = []
        for product_id, needed in required_quantities(session.cart).items():
            if await self.ctx.vault.available(product_id) < needed:
                missing.append(names[product_id])
        return missing

    def _reject(self, admin_id: str, error: ChatShopError) -> Reply:
        logger.info(
            f"Approval rejected: {error.code}",
            extra={"customer_id": admin_id, "order_id": error.context.order_id,
                   "error_code": error.code},
        )
        return TextReply(error.message)
