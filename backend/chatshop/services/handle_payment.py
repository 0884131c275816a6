"""Payment Handlers — method selection, bank choice, proof submission, status check.

Invariants:
    - select_payment / select_bank only move to select_bank or awaiting_payment
    - An invalid choice replies with the menu again and changes nothing
    - A failed QRIS invoice leaves the session in select_payment
    - Payment proof moves awaiting_payment -> awaiting_admin_approval, nothing else
    - check_payment_status is read-only: it never transitions state, and a gateway
      failure yields the verify-manually reply with the session untouched

Design Decisions:
    - Choice tables are module constants: every accepted word visible in one place
    - Manual accounts come from configuration; an unconfigured wallet or bank is
      rejected instead of showing an empty account number
"""

import logging

from chatshop.core import format_messages, intents
from chatshop.core.domain_types import (
    AuditEventType, BankCode, CustomerId, PaymentKind, Step,
)
from chatshop.core.errors import ExternalServiceError
from chatshop.core.order_pricing import convert_to_idr
from chatshop.core.responses import AdminNotice, Reply, TextReply
from chatshop.core.session_state import PaymentMethod
from chatshop.services.shop_context import ShopContext

logger = logging.getLogger(__name__)

BANK_TRANSFER_CHOICE = "bank"

PAYMENT_CHOICES: dict[str, PaymentKind | str] = {
    "1": PaymentKind.QRIS, "qris": PaymentKind.QRIS,
    "2": PaymentKind.DANA, "dana": PaymentKind.DANA,
    "3": PaymentKind.GOPAY, "gopay": PaymentKind.GOPAY,
    "4": PaymentKind.OVO, "ovo": PaymentKind.OVO,
    "5": PaymentKind.SHOPEEPAY, "shopeepay": PaymentKind.SHOPEEPAY,
    "6": BANK_TRANSFER_CHOICE, "bank": BANK_TRANSFER_CHOICE,
    "transfer": BANK_TRANSFER_CHOICE,
}

BANK_CHOICES: dict[str, BankCode] = {
    "1": BankCode.BCA, "bca": BankCode.BCA,
    "2": BankCode.BNI, "bni": BankCode.BNI,
    "3": BankCode.BRI, "bri": BankCode.BRI,
    "4": BankCode.MANDIRI, "mandiri": BankCode.MANDIRI,
}

LABELS = {
    "qris": "QRIS", "dana": "DANA", "gopay": "GoPay", "ovo": "OVO",
    "shopeepay": "ShopeePay", "bca": "BCA", "bni": "BNI", "bri": "BRI",
    "mandiri": "Mandiri", "bank_transfer": "Bank transfer",
}


class PaymentHandlers:
    def __init__(self, ctx: ShopContext):
        self.ctx = ctx

    async def handle_payment_selection(self, customer_id: CustomerId, message: str) -> Reply:
        choice = PAYMENT_CHOICES.get(message)
        match choice:
            case None:
                return TextReply(format_messages.invalid_payment_choice())
            case PaymentKind.QRIS:
                return await self._start_qris(customer_id)
            case "bank":
                await self.ctx.sessions.set_step(customer_id, Step.SELECT_BANK)
                return TextReply(format_messages.bank_menu())
            case _:
                return await self._start_manual(
                    customer_id, PaymentMethod(kind=choice), choice.value,
                )

    async def handle_bank_choice(self, customer_id: CustomerId, message: str) -> Reply:
        bank = BANK_CHOICES.get(message)
        if bank is None:
            return TextReply(format_messages.invalid_bank_choice())
        return await self._start_manual(
            customer_id,
            PaymentMethod(kind=PaymentKind.BANK_TRANSFER, bank_code=bank),
            bank.value,
        )

    async def handle_awaiting_payment(self, customer_id: CustomerId, message: str) -> Reply:
        if message in intents.CHECK_STATUS_WORDS:
            return await self.check_payment_status(customer_id)
        order_id = await self.ctx.sessions.get_order_id(customer_id)
        return TextReply(format_messages.awaiting_payment_hint(order_id))

    async def handle_awaiting_approval(self, customer_id: CustomerId, message: str) -> Reply:
        order_id = await self.ctx.sessions.get_order_id(customer_id)
        return TextReply(format_messages.awaiting_approval(order_id))

    async def handle_payment_proof(self, customer_id: CustomerId, step: Step) -> Reply:
        if step is Step.AWAITING_ADMIN_APPROVAL:
            return await self.handle_awaiting_approval(customer_id, "")
        if step is not Step.AWAITING_PAYMENT:
            return TextReply(format_messages.proof_ignored())

        moved = await self.ctx.sessions.compare_and_set_step(
            customer_id, Step.AWAITING_PAYMENT, Step.AWAITING_ADMIN_APPROVAL,
        )
        if not moved:
            return TextReply(format_messages.proof_ignored())
        session = await self.ctx.sessions.get_session(customer_id)
        total_idr = convert_to_idr(session.total_usd, self.ctx.rate)
        method = session.payment_method
        method_label = _method_label(method)
        self.ctx.audit.record(
            AuditEventType.PAYMENT_PROOF_SUBMITTED, customer_id,
            order_id=session.order_id, method=method_label,
        )
        logger.info(
            "Payment proof submitted",
            extra={"customer_id": customer_id, "order_id": session.order_id},
        )
        return AdminNotice(
            message=format_messages.proof_received(session.order_id),
            admin_message=format_messages.admin_proof_notice(
                session.order_id, customer_id, total_idr,
                session.item_count, method_label,
            ),
            recipients=tuple(self.ctx.allowlist.admin_ids()),
        )

    async def check_payment_status(self, customer_id: CustomerId) -> Reply:
        method = await self.ctx.sessions.get_payment_method(customer_id)
        if method is None or not method.has_invoice:
            return TextReply(format_messages.no_active_invoice())
        order_id = await self.ctx.sessions.get_order_id(customer_id)
        try:
            status = await self.ctx.gateway.check_status(method.invoice_id)
        except ExternalServiceError as e:
            logger.warning(
                f"Payment status check failed: {e.message}",
                extra={"customer_id": customer_id, "order_id": order_id,
                       "error_code": e.code},
            )
            return TextReply(format_messages.verify_manually())
        return TextReply(format_messages.payment_status(status.value, order_id))

    async def _start_qris(self, customer_id: CustomerId) -> Reply:
        session = await self.ctx.sessions.get_session(customer_id)
        total_idr = convert_to_idr(session.total_usd, self.ctx.rate)
        try:
            invoice_id = await self.ctx.invoices.create_qris_invoice(
                session.order_id, total_idr,
            )
        except ExternalServiceError as e:
            logger.error(
                f"QRIS invoice creation failed: {e.message}",
                extra={"customer_id": customer_id, "order_id": session.order_id,
                       "error_code": e.code},
            )
            return TextReply(format_messages.invoice_creation_failed())
        await self.ctx.sessions.set_payment_method(
            customer_id, PaymentMethod(kind=PaymentKind.QRIS, invoice_id=invoice_id),
        )
        await self.ctx.sessions.set_step(customer_id, Step.AWAITING_PAYMENT)
        self.ctx.audit.record(
            AuditEventType.PAYMENT_INITIATED, customer_id,
            order_id=session.order_id, total_idr=total_idr,
            method=PaymentKind.QRIS.value, invoice_id=invoice_id,
        )
        return TextReply(format_messages.qris_instructions(
            session.order_id, total_idr, invoice_id,
        ))

    async def _start_manual(
        self, customer_id: CustomerId, method: PaymentMethod, account_key: str,
    ) -> Reply:
        label = LABELS[account_key]
        account = self.ctx.payment_accounts.get(account_key)
        if account is None:
            return TextReply(format_messages.payment_method_unavailable(label))
        session = await self.ctx.sessions.get_session(customer_id)
        total_idr = convert_to_idr(session.total_usd, self.ctx.rate)
        await self.ctx.sessions.set_payment_method(customer_id, method)
        await self.ctx.sessions.set_step(customer_id, Step.AWAITING_PAYMENT)
        self.ctx.audit.record(
            AuditEventType.PAYMENT_INITIATED, customer_id,
            order_id=session.order_id, total_idr=total_idr, method=account_key,
        )
        return TextReply(format_messages.manual_transfer_instructions(
            label, account.number, account.holder, total_idr, session.order_id,
        ))


def _method_label(method: PaymentMethod | None) -> str:
    if method is None:
        return "unknown"
    if method.bank_code is not None:
        return LABELS[method.bank_code.value]
    return LABELS[method.kind.value]
