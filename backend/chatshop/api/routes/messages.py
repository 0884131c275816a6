"""Messages — the single inbound endpoint used by the chat transport bridge.

Invariants:
    - Every accepted request yields exactly one reply payload (HTTP 200);
      conversational failures are replies, not HTTP errors
    - Input is validated by Pydantic before reaching the engine

Design Decisions:
    - Engine resolved from app.state via a dependency: tests override it with
      app.dependency_overrides instead of patching globals
"""

import logging

from fastapi import APIRouter, Depends, Request

from chatshop.schemas.message import InboundMessage, ReplyResponse
from chatshop.services.conversation_engine import ConversationEngine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/messages", tags=["messages"])


def get_engine(request: Request) -> ConversationEngine:
    return request.app.state.runtime.engine


@router.post("", response_model=ReplyResponse, response_model_exclude_none=True)
async def post_message(
    body: InboundMessage,
    engine: ConversationEngine = Depends(get_engine),
):
    """Process one inbound chat message and return the reply for the bridge."""
    reply = await engine.process_message(body.customer_id, body.text, body.has_media)
    return reply.to_payload()
