"""Service test fixtures — conversation driver and audit log reader.

Invariants:
    - `flow` drives the real ConversationEngine; no handler is patched
    - `audit_log` drains pending fire-and-forget writes before reading rows

Design Decisions:
    - Flow helpers stop at named steps (select_payment, awaiting approval) so
      each test starts from the state it exercises
"""

import pytest
from sqlalchemy import select

from chatshop.core.responses import TextReply
from chatshop.models.audit_event import AuditEvent

CUSTOMER = "628123456789"


class Flow:
    def __init__(self, engine):
        self.engine = engine
        self.ctx = engine.ctx

    async def say(self, text: str = "", customer: str = CUSTOMER, media: bool = False):
        return await self.engine.process_message(customer, text, media)

    async def step(self, customer: str = CUSTOMER) -> str:
        return await self.ctx.sessions.get_step(customer)

    async def corrupt_step(self, raw_step: str, customer: str = CUSTOMER) -> None:
        """Overwrite the stored step with an unvalidated value."""
        store = self.ctx.sessions
        async with store._lock:
            store._touch(customer).step = raw_step

    async def fill_cart(self, *products: str, customer: str = CUSTOMER) -> None:
        await self.say("1", customer)
        for product in products or ("netflix", "spotify"):
            reply = await self.say(product, customer)
            assert "added to your cart" in reply.message, reply.message

    async def to_select_payment(self, *products: str, customer: str = CUSTOMER) -> str:
        await self.fill_cart(*products, customer=customer)
        await self.say("cart", customer)
        reply = await self.say("checkout", customer)
        assert isinstance(reply, TextReply)
        assert await self.step(customer) == "select_payment", reply.message
        return await self.ctx.sessions.get_order_id(customer)

    async def to_awaiting_payment(
        self, *products: str, choice: str = "2", customer: str = CUSTOMER,
    ) -> str:
        order_id = await self.to_select_payment(*products, customer=customer)
        reply = await self.say(choice, customer)
        assert await self.step(customer) == "awaiting_payment", reply.message
        return order_id

    async def to_awaiting_approval(
        self, *products: str, choice: str = "2", customer: str = CUSTOMER,
    ) -> str:
        order_id = await self.to_awaiting_payment(*products, choice=choice, customer=customer)
        await self.say(customer=customer, media=True)
        assert await self.step(customer) == "awaiting_admin_approval"
        return order_id


@pytest.fixture
def flow(engine):
    return Flow(engine)


@pytest.fixture
def audit_log(ctx, db_manager):
    async def read(event: str | None = None) -> list[AuditEvent]:
        await ctx.audit.drain()
        stmt = select(AuditEvent).order_by(AuditEvent.created_at)
        if event is not None:
            stmt = stmt.where(AuditEvent.event == event)
        async with db_manager.session() as db:
            return list((await db.execute(stmt)).scalars().all())
    return read
