"""Integration Tests: Checkout pipeline — totals, atomicity, order cap, order ids.

Invariants:
    - netflix $5 + spotify $2 at 15800 → Rp 110.600, step select_payment
    - A stock shortfall rejects the whole checkout; cart, step and order id untouched
    - Order cap rejection is audited and leaves the session in checkout
    - Two "checkout" messages arriving together create one order
"""

import asyncio

CUSTOMER = "628123456789"


async def test_worked_example(flow, ctx, audit_log):
    await flow.fill_cart("netflix", "spotify")
    await flow.say("cart")
    assert await flow.step() == "checkout"
    reply = await flow.say("checkout")

    order_id = await ctx.sessions.get_order_id(CUSTOMER)
    assert order_id.startswith("ORD-") and order_id.endswith("-6789")
    assert order_id in reply.message
    assert "$7.00" in reply.message
    assert "Rp 110.600" in reply.message
    assert "Choose a payment method" in reply.message
    assert await flow.step() == "select_payment"

    [created] = await audit_log("order_created")
    assert created.order_id == order_id
    assert created.total_idr == 110_600
    assert created.details["total_usd"] == "7.00"
    assert [i["product_id"] for i in created.details["items"]] == ["netflix", "spotify"]


async def test_out_of_stock_checkout_is_atomic(flow, ctx, inner_catalog, audit_log):
    await flow.fill_cart("netflix", "spotify")
    await flow.say("cart")
    await inner_catalog.set_stock("spotify", 0)

    reply = await flow.say("checkout")
    assert "not enough stock for Spotify Premium" in reply.message
    assert await flow.step() == "checkout"
    assert len(await ctx.sessions.get_cart(CUSTOMER)) == 2
    assert await ctx.sessions.get_order_id(CUSTOMER) is None
    assert await audit_log("order_created") == []
    ctx.guard.update_limits(order_limit=1)
    assert ctx.guard.can_place_order(CUSTOMER).allowed


async def test_duplicate_items_need_matching_stock(flow, inner_catalog):
    await inner_catalog.set_stock("netflix", 1)
    await flow.fill_cart("netflix", "netflix")
    await flow.say("cart")
    reply = await flow.say("checkout")
    assert "not enough stock" in reply.message
    assert await flow.step() == "checkout"


async def test_removed_product_blocks_checkout(flow, inner_catalog):
    await flow.fill_cart("netflix")
    await flow.say("cart")
    await inner_catalog.remove("netflix")
    reply = await flow.say("checkout")
    assert "not enough stock" in reply.message


async def test_order_cap(flow, ctx, audit_log):
    ctx.guard.update_limits(order_limit=1)
    await flow.to_select_payment("netflix")
    await flow.say("menu")
    await flow.say("cart")
    reply = await flow.say("checkout")
    assert "daily limit of 1 orders" in reply.message
    assert await flow.step() == "checkout"
    security = await audit_log("security")
    assert security[-1].details["reason"] == "order_limit"


async def test_each_checkout_gets_a_fresh_order_id(flow, ctx):
    first = await flow.to_select_payment("netflix")
    await flow.say("cart")
    await flow.say("checkout")
    second = await ctx.sessions.get_order_id(CUSTOMER)
    assert first != second


async def test_checkout_clears_previous_payment_method(flow, ctx):
    await flow.to_awaiting_payment("netflix", choice="1")
    assert (await ctx.sessions.get_payment_method(CUSTOMER)).invoice_id == "inv-1"
    await flow.say("cart")
    await flow.say("checkout")
    assert await ctx.sessions.get_payment_method(CUSTOMER) is None


async def test_clear_empties_cart_and_returns_to_menu(flow, ctx):
    await flow.fill_cart("netflix")
    await flow.say("cart")
    reply = await flow.say("clear")
    assert "cleared" in reply.message
    assert await flow.step() == "menu"
    assert await ctx.sessions.get_cart(CUSTOMER) == []


async def test_other_words_in_checkout_show_hint(flow):
    await flow.fill_cart("netflix")
    await flow.say("cart")
    reply = await flow.say("what now")
    assert "Type *checkout*" in reply.message
    assert await flow.step() == "checkout"


async def test_double_tapped_checkout_creates_one_order(flow, ctx, audit_log):
    await flow.fill_cart("netflix", "spotify")
    await flow.say("cart")

    first, second = await asyncio.gather(flow.say("checkout"), flow.say("checkout"))

    order_id = await ctx.sessions.get_order_id(CUSTOMER)
    [created] = await audit_log("order_created")
    assert created.order_id == order_id
    assert order_id in first.message
    assert second.message.startswith("Invalid choice")
    assert await flow.step() == "select_payment"
    ctx.guard.update_limits(order_limit=2)
    assert ctx.guard.can_place_order(CUSTOMER).allowed
