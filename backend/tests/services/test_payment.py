"""Integration Tests: Payment handlers — method selection, proof, status checks.

Invariants:
    - Invalid choices reply with the menu and change nothing
    - QRIS invoice failure leaves the session in select_payment
    - Status checks never transition state; gateway failure → verify manually
    - Payment proof moves awaiting_payment → awaiting_admin_approval with an AdminNotice
"""

from chatshop.core.domain_types import BankCode, PaymentKind, PaymentStatus
from chatshop.core.responses import AdminNotice, TextReply

CUSTOMER = "628123456789"
ADMIN = "628000000001"


async def test_qris_creates_invoice_for_idr_total(flow, ctx, gateway, audit_log):
    order_id = await flow.to_select_payment()
    reply = await flow.say("qris")
    assert gateway.invoices == [(order_id, 110_600)]
    assert "inv-1" in reply.message
    assert await flow.step() == "awaiting_payment"
    method = await ctx.sessions.get_payment_method(CUSTOMER)
    assert method.kind is PaymentKind.QRIS and method.invoice_id == "inv-1"
    [initiated] = await audit_log("payment_initiated")
    assert initiated.details["method"] == "qris"


async def test_qris_failure_stays_in_select_payment(flow, gateway):
    await flow.to_select_payment()
    gateway.fail_invoices = True
    reply = await flow.say("1")
    assert "couldn't create a QRIS invoice" in reply.message
    assert await flow.step() == "select_payment"


async def test_manual_wallet_shows_account(flow, ctx):
    await flow.to_select_payment()
    reply = await flow.say("dana")
    assert "081200001111" in reply.message
    assert "Rp 110.600" in reply.message
    assert (await ctx.sessions.get_payment_method(CUSTOMER)).kind is PaymentKind.DANA


async def test_unconfigured_wallet_is_rejected(flow):
    await flow.to_select_payment()
    reply = await flow.say("3")
    assert "GoPay is not available" in reply.message
    assert await flow.step() == "select_payment"


async def test_invalid_payment_choice(flow):
    await flow.to_select_payment()
    reply = await flow.say("9")
    assert "Invalid choice" in reply.message
    assert await flow.step() == "select_payment"


async def test_bank_transfer_flow(flow, ctx):
    await flow.to_select_payment()
    assert "Choose your bank" in (await flow.say("6")).message
    assert await flow.step() == "select_bank"
    assert "Invalid choice" in (await flow.say("7")).message
    assert await flow.step() == "select_bank"
    reply = await flow.say("bca")
    assert "1234567890" in reply.message
    method = await ctx.sessions.get_payment_method(CUSTOMER)
    assert method.kind is PaymentKind.BANK_TRANSFER
    assert method.bank_code is BankCode.BCA
    assert await flow.step() == "awaiting_payment"


async def test_status_check_is_read_only(flow, gateway):
    await flow.to_awaiting_payment(choice="1")
    gateway.statuses["inv-1"] = PaymentStatus.PENDING
    reply = await flow.say("check")
    assert "still pending" in reply.message
    gateway.statuses["inv-1"] = PaymentStatus.SUCCEEDED
    reply = await flow.say("status")
    assert "confirmed" in reply.message
    assert await flow.step() == "awaiting_payment"


async def test_status_check_gateway_failure(flow, gateway):
    await flow.to_awaiting_payment(choice="1")
    gateway.fail_checks = True
    reply = await flow.say("cek")
    assert "verify it manually" in reply.message
    assert await flow.step() == "awaiting_payment"


async def test_status_check_without_invoice(flow, gateway):
    await flow.to_awaiting_payment(choice="2")
    reply = await flow.say("check")
    assert "no active invoice" in reply.message
    assert gateway.check_calls == []


async def test_other_text_while_awaiting_payment(flow):
    order_id = await flow.to_awaiting_payment()
    reply = await flow.say("hello?")
    assert order_id in reply.message
    assert await flow.step() == "awaiting_payment"


async def test_payment_proof_notifies_admins(flow, audit_log):
    order_id = await flow.to_awaiting_payment()
    reply = await flow.say(media=True)
    assert isinstance(reply, AdminNotice)
    assert reply.recipients == (ADMIN,)
    assert f"/approve {order_id}" in reply.admin_message
    assert CUSTOMER not in reply.admin_message
    assert order_id in reply.message
    assert await flow.step() == "awaiting_admin_approval"
    [proof] = await audit_log("payment_proof_submitted")
    assert proof.order_id == order_id
    assert proof.details["method"] == "DANA"


async def test_proof_outside_payment_is_ignored(flow):
    reply = await flow.say(media=True)
    assert isinstance(reply, TextReply)
    assert "no order waiting for payment" in reply.message
    assert await flow.step() == "menu"


async def test_second_proof_while_awaiting_approval(flow):
    await flow.to_awaiting_approval()
    reply = await flow.say(media=True)
    assert isinstance(reply, TextReply)
    assert "waiting for admin approval" in reply.message
