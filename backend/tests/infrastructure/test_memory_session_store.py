"""In-Memory Session Store — snapshots, compare-and-set, inactivity expiry."""

import asyncio
from decimal import Decimal

from chatshop.core.domain_types import Step
from chatshop.core.session_state import CartItem
from chatshop.infrastructure.memory_session_store import InMemorySessionStore

ITEM = CartItem("netflix", "Netflix", Decimal("5"))


async def test_new_customer_starts_at_menu(clock):
    store = InMemorySessionStore(clock=clock)
    assert await store.get_step("c1") == "menu"
    assert await store.count() == 1


async def test_reads_are_snapshots(clock):
    store = InMemorySessionStore(clock=clock)
    await store.add_to_cart("c1", ITEM)
    session = await store.get_session("c1")
    session.cart.append(ITEM)
    assert len(await store.get_cart("c1")) == 1


async def test_compare_and_set(clock):
    store = InMemorySessionStore(clock=clock)
    await store.set_step("c1", Step.AWAITING_ADMIN_APPROVAL)
    assert await store.compare_and_set_step("c1", Step.AWAITING_ADMIN_APPROVAL, Step.MENU)
    assert not await store.compare_and_set_step("c1", Step.AWAITING_ADMIN_APPROVAL, Step.MENU)
    assert not await store.compare_and_set_step("no-such-id", Step.MENU, Step.BROWSING)


async def test_concurrent_compare_and_set_has_one_winner(clock):
    store = InMemorySessionStore(clock=clock)
    await store.set_step("c1", Step.AWAITING_ADMIN_APPROVAL)
    results = await asyncio.gather(*[
        store.compare_and_set_step("c1", Step.AWAITING_ADMIN_APPROVAL, Step.MENU)
        for _ in range(10)
    ])
    assert results.count(True) == 1


async def test_find_by_order_id(clock):
    store = InMemorySessionStore(clock=clock)
    await store.set_order_id("c1", "ORD-1")
    assert (await store.find_by_order_id("ORD-1")).customer_id == "c1"
    assert await store.find_by_order_id("ORD-2") is None


async def test_expire_inactive_skips_pending_approval(clock):
    store = InMemorySessionStore(clock=clock)
    await store.add_to_cart("idle", ITEM)
    await store.set_step("pending", Step.AWAITING_ADMIN_APPROVAL)
    clock.advance(3600)
    await store.get_step("active")
    assert await store.expire_inactive(1800) == 1
    assert set(await store.list_customer_ids()) == {"pending", "active"}
    assert await store.get_cart("idle") == []

