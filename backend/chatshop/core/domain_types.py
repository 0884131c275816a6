"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - CustomerId, OrderId, ProductId wrap str; never pass bare strings across module seams
    - Step is closed: exactly seven conversation states, parsed via Step.parse
    - All valid states encoded as Enums, no raw string matching in handlers

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON (audit metadata, API payloads) without custom encoders
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

CustomerId = NewType("CustomerId", str)
OrderId = NewType("OrderId", str)
ProductId = NewType("ProductId", str)


# ─── Enums ───────────────────────────────────────────────────────

class Step(str, Enum):
    """Conversation state of a customer's session."""
    MENU = "menu"
    BROWSING = "browsing"
    CHECKOUT = "checkout"
    SELECT_PAYMENT = "select_payment"
    SELECT_BANK = "select_bank"
    AWAITING_PAYMENT = "awaiting_payment"
    AWAITING_ADMIN_APPROVAL = "awaiting_admin_approval"

    @classmethod
    def parse(cls, raw: object) -> "Step | None":
        """Return the matching Step, or None for a corrupt/unknown value."""
        if isinstance(raw, cls):
            return raw
        try:
            return cls(raw)
        except ValueError:
            return None


class PaymentStatus(str, Enum):
    """Invoice status as reported by the payment gateway."""
    SUCCEEDED = "SUCCEEDED"
    PENDING = "PENDING"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"
    UNKNOWN = "UNKNOWN"


class PaymentKind(str, Enum):
    """How the customer chose to pay."""
    QRIS = "qris"
    DANA = "dana"
    GOPAY = "gopay"
    OVO = "ovo"
    SHOPEEPAY = "shopeepay"
    BANK_TRANSFER = "bank_transfer"


class BankCode(str, Enum):
    """Banks accepted for manual transfer."""
    BCA = "bca"
    BNI = "bni"
    BRI = "bri"
    MANDIRI = "mandiri"


class AuditEventType(str, Enum):
    """Append-only audit event kinds — maps to audit_events.event column."""
    ORDER_CREATED = "order_created"
    PAYMENT_INITIATED = "payment_initiated"
    PAYMENT_PROOF_SUBMITTED = "payment_proof_submitted"
    ADMIN_ACTION = "admin_action"
    PRODUCTS_DELIVERED = "products_delivered"
    SECURITY = "security"
    ERROR = "error"


class SecurityReason(str, Enum):
    """Why a security event was recorded."""
    RATE_LIMIT = "rate_limit"
    ORDER_LIMIT = "order_limit"
    COOLDOWN = "cooldown"
    UNAUTHORIZED_ADMIN = "unauthorized_admin_access"
    STEP_ANOMALY = "step_anomaly"


# Manual e-wallets (choices 2–5 of the payment menu)
E_WALLETS: tuple[PaymentKind, ...] = (
    PaymentKind.DANA, PaymentKind.GOPAY, PaymentKind.OVO, PaymentKind.SHOPEEPAY,
)
