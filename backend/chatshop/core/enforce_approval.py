"""Approval Precondition Enforcement — validates an /approve before any effect.

Invariants:
    - All functions are PURE: no IO, no async, no side effects
    - Return a ChatShopError on violation, None on success
    - validate_approval chains order lookup and pending checks — first error wins
    - Payment status is checked separately (it needs a gateway round trip)

Design Decisions:
    - Pure functions over method dispatch: testable without mocks
    - The pending check is the idempotency guard: once delivery moves the step
      away from awaiting_admin_approval, a repeated /approve fails here
"""

from chatshop.core import format_messages
from chatshop.core.domain_types import PaymentStatus, Step
from chatshop.core.errors import (
    ChatShopError, ConsistencyError, ErrorContext, ResourceNotFoundError,
)
from chatshop.core.session_state import Session


def check_order_found(session: Session | None, order_id: str) -> ChatShopError | None:
    """The order id must belong to a live session."""
    if session is None or session.order_id != order_id:
        return ResourceNotFoundError(
            "Order", order_id, ErrorContext(order_id=order_id),
        )
    return None


def check_order_pending(session: Session, order_id: str) -> ChatShopError | None:
    """The owning session must be exactly awaiting_admin_approval."""
    if Step.parse(session.step) is not Step.AWAITING_ADMIN_APPROVAL:
        return ConsistencyError(
            format_messages.order_not_pending(order_id, session.step),
            "ORDER_NOT_PENDING",
            ErrorContext(customer_id=session.customer_id, order_id=order_id),
        )
    return None


def check_payment_verified(
    status: PaymentStatus, order_id: str,
) -> ChatShopError | None:
    """Only a SUCCEEDED gateway status permits delivery."""
    if status is not PaymentStatus.SUCCEEDED:
        return ConsistencyError(
            format_messages.payment_not_verified(order_id, status.value),
            "PAYMENT_NOT_VERIFIED",
            ErrorContext(order_id=order_id, debug_info={"status": status.value}),
        )
    return None


def validate_approval(session: Session | None, order_id: str) -> ChatShopError | None:
    """Chain the state-only approval checks. Returns first error or None."""
    return (
        check_order_found(session, order_id)
        or check_order_pending(session, order_id)  # type: ignore[arg-type]
    )
