"""Reply Payloads — what the engine hands back to the chat transport per message.

Invariants:
    - Every inbound message produces exactly one Reply
    - message is always addressed to the sender; other recipients are explicit
    - to_payload() output is plain JSON (no Decimal, no Enum instances)
"""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class TextReply:
    message: str

    def to_payload(self) -> dict:
        return {"type": "text", "message": self.message}


@dataclass(frozen=True)
class DeliveryAction:
    """Reply to the admin plus a message the transport must push to a customer."""
    message: str
    customer_id: str
    customer_message: str
    deliver_to_customer: bool = True

    def to_payload(self) -> dict:
        return {
            "type": "delivery",
            "message": self.message,
            "deliver_to_customer": self.deliver_to_customer,
            "customer_id": self.customer_id,
            "customer_message": self.customer_message,
        }


@dataclass(frozen=True)
class BroadcastDirective:
    message: str
    recipients: tuple[str, ...]
    type: str = "broadcast"

    def to_payload(self) -> dict:
        return {
            "type": self.type,
            "message": self.message,
            "recipients": list(self.recipients),
        }


@dataclass(frozen=True)
class AdminNotice:
    """Reply to the customer plus a notification for every admin."""
    message: str
    admin_message: str
    recipients: tuple[str, ...]

    def to_payload(self) -> dict:
        return {
            "type": "admin_notice",
            "message": self.message,
            "admin_message": self.admin_message,
            "recipients": list(self.recipients),
        }


Reply = Union[TextReply, DeliveryAction, BroadcastDirective, AdminNotice]
