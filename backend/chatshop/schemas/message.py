"""Message Schemas — inbound chat message and the reply envelope.

Invariants:
    - InboundMessage.customer_id: 1-64 chars, stripped, non-empty
    - InboundMessage.text may be empty only when has_media is set
    - ReplyResponse mirrors core/responses to_payload() for every reply type

Design Decisions:
    - One flat response model with optional fields over a tagged union:
      the transport bridge switches on `type` and ignores absent keys
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class InboundMessage(BaseModel):
    """One message from the chat transport bridge."""
    customer_id: str = Field(min_length=1, max_length=64)
    text: str = Field("", max_length=4_000)
    has_media: bool = False

    @field_validator("customer_id")
    @classmethod
    def strip_customer_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("customer_id cannot be empty or whitespace")
        return v

    @model_validator(mode="after")
    def require_text_or_media(self) -> "InboundMessage":
        if not self.text.strip() and not self.has_media:
            raise ValueError("text is required when has_media is false")
        return self


class ReplyResponse(BaseModel):
    """Reply payload for the transport bridge."""
    type: Literal["text", "delivery", "broadcast", "admin_notice"]
    message: str
    customer_id: str | None = None
    customer_message: str | None = None
    deliver_to_customer: bool | None = None
    admin_message: str | None = None
    recipients: list[str] | None = None
