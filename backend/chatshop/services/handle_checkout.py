"""Checkout Handlers — checkout-step routing and the checkout pipeline (2 methods).

Invariants:
    - Order cap is checked first; a rejection is audited before the reply
    - Any stock shortfall rejects the whole checkout; cart and step untouched
    - On success, in order: order id assigned, previous payment method cleared,
      guard.record_order, order_created audited, step -> select_payment
    - order_id is never reused: every successful checkout allocates a fresh one

Design Decisions:
    - Stock levels read fresh from the catalog (not the TTL cache) right before
      pricing; core/order_pricing decides, this module only gathers and applies
"""

import logging

from chatshop.core import format_messages, intents
from chatshop.core.domain_types import AuditEventType, CustomerId, Step
from chatshop.core.order_pricing import quote_checkout, required_quantities
from chatshop.core.responses import Reply, TextReply
from chatshop.core.result import Err, Ok
from chatshop.services.shop_context import ShopContext

logger = logging.getLogger(__name__)


class CheckoutHandlers:
    def __init__(self, ctx: ShopContext):
        self.ctx = ctx

    async def handle_checkout_step(self, customer_id: CustomerId, message: str) -> Reply:
        if message in intents.CHECKOUT_WORDS:
            return await self.process_checkout(customer_id)
        if message in intents.CLEAR_WORDS:
            await self.ctx.sessions.clear_cart(customer_id)
            await self.ctx.sessions.set_step(customer_id, Step.MENU)
            return TextReply(
                format_messages.cart_cleared() + "\n\n"
                + format_messages.main_menu(self.ctx.shop_name)
            )
        return TextReply(format_messages.checkout_hint())

    async def process_checkout(self, customer_id: CustomerId) -> Reply:
        decision = self.ctx.guard.can_place_order(customer_id)
        if not decision.allowed:
            self.ctx.audit.security(
                customer_id, decision.reason,
                limit=decision.limit, wait_seconds=decision.wait_seconds,
            )
            return TextReply(decision.message)

        cart = await self.ctx.sessions.get_cart(customer_id)
        if not cart:
            return TextReply(format_messages.empty_cart())

        stock_levels = {}
        for product_id in required_quantities(cart):
            product = await self.ctx.catalog.get_fresh(product_id)
            stock_levels[product_id] = product.stock if product else None

        match quote_checkout(cart, stock_levels, self.ctx.rate):
            case Err(error=error):
                logger.info(
                    f"Checkout rejected: {error.code}",
                    extra={"customer_id": customer_id, "error_code": error.code},
                )
                return TextReply(error.message)
            case Ok(value=quote):
                pass

        order_id = self.ctx.order_ids.allocate(customer_id)
        await self.ctx.sessions.set_order_id(customer_id, order_id)
        await self.ctx.sessions.set_payment_method(customer_id, None)
        self.ctx.guard.record_order(customer_id)
        self.ctx.audit.record(
            AuditEventType.ORDER_CREATED,
            customer_id,
            order_id=order_id,
            total_idr=quote.total_idr,
            items=[
                {"product_id": i.product_id, "name": i.name,
                 "unit_price_usd": str(i.unit_price_usd)}
                for i in cart
            ],
            total_usd=str(quote.total_usd),
        )
        await self.ctx.sessions.set_step(customer_id, Step.SELECT_PAYMENT)
        logger.info(
            "Order created",
            extra={"customer_id": customer_id, "order_id": order_id,
                   "event": AuditEventType.ORDER_CREATED.value},
        )
        return TextReply(format_messages.order_summary(
            order_id, cart, quote.total_usd, quote.total_idr,
        ))
