"""Customer Handlers — menu, browsing, cart view and order history (5 methods).

Invariants:
    - Cart items are snapshots (CartItem) built from the catalog at add time
    - An out-of-stock product is never added to the cart
    - show_cart moves to checkout only when the cart is non-empty
    - The AI fallback never changes state; its failure degrades to product_not_found
    - History includes orders created by the customer's earlier messages, even
      while their audit writes are still in flight

Design Decisions:
    - Browsing resolves against the cached catalog, but the stock check before
      adding goes to the catalog directly
"""

import logging

from chatshop.core import format_messages, intents
from chatshop.core.domain_types import CustomerId, Step
from chatshop.core.errors import ChatShopError
from chatshop.core.product_resolver import resolve_product
from chatshop.core.responses import Reply, TextReply
from chatshop.core.session_state import CartItem
from chatshop.services.shop_context import ShopContext

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 5


class CustomerHandlers:
    """Customer-facing flows outside checkout and payment."""

    def __init__(self, ctx: ShopContext):
        self.ctx = ctx

    async def show_main_menu(self, customer_id: CustomerId, message: str) -> Reply:
        await self.ctx.sessions.set_step(customer_id, Step.MENU)
        return TextReply(format_messages.main_menu(self.ctx.shop_name))

    async def show_cart(self, customer_id: CustomerId, message: str) -> Reply:
        cart = await self.ctx.sessions.get_cart(customer_id)
        if not cart:
            return TextReply(format_messages.empty_cart())
        await self.ctx.sessions.set_step(customer_id, Step.CHECKOUT)
        session = await self.ctx.sessions.get_session(customer_id)
        return TextReply(format_messages.cart_view(
            cart, session.total_usd, self.ctx.rate,
        ))

    async def show_history(self, customer_id: CustomerId, message: str) -> Reply:
        # order_created rows are written in the background
        await self.ctx.audit.settle(customer_id)
        records = await self.ctx.audit.sink.recent_orders(customer_id, HISTORY_LIMIT)
        orders = [
            {
                "order_id": record.order_id,
                "created_at": record.timestamp,
                "total_idr": record.total_idr or 0,
                "item_count": len(record.metadata.get("items", [])),
            }
            for record in records
        ]
        return TextReply(format_messages.order_history(orders))

    async def handle_menu(self, customer_id: CustomerId, message: str) -> Reply:
        if message in intents.BROWSE_WORDS:
            await self.ctx.sessions.set_step(customer_id, Step.BROWSING)
            products = await self.ctx.catalog.get_all()
            return TextReply(format_messages.product_list(products, self.ctx.rate))
        if message == "2":
            return await self.show_cart(customer_id, message)
        if message in intents.ABOUT_WORDS:
            return TextReply(format_messages.about(self.ctx.shop_name))
        if message in intents.SUPPORT_WORDS:
            return TextReply(format_messages.contact(self.ctx.support_contact))
        return TextReply(format_messages.invalid_menu_option())

    async def handle_browsing(self, customer_id: CustomerId, message: str) -> Reply:
        products = await self.ctx.catalog.get_all()
        product = resolve_product(message, products)
        if product is None:
            return await self._fallback(customer_id, message, products)
        if not await self.ctx.catalog.is_in_stock(product.id):
            return TextReply(format_messages.product_unavailable(product.name))
        item = CartItem(
            product_id=product.id, name=product.name, unit_price_usd=product.price_usd,
        )
        cart_size = await self.ctx.sessions.add_to_cart(customer_id, item)
        logger.info(
            f"Added {product.id} to cart",
            extra={"customer_id": customer_id, "event": "cart_add"},
        )
        return TextReply(format_messages.product_added(item, cart_size, self.ctx.rate))

    async def _fallback(
        self, customer_id: CustomerId, message: str, products: list,
    ) -> Reply:
        if self.ctx.ai_enabled and intents.looks_like_question(message):
            try:
                answer = await self.ctx.assistant.answer_question(message, products)
            except ChatShopError as e:
                logger.warning(
                    f"AI fallback failed: {e.message}",
                    extra={"customer_id": customer_id, "error_code": e.code},
                )
            else:
                if answer:
                    return TextReply(answer)
        return TextReply(format_messages.product_not_found(message))
