"""Resilient Anthropic Client — single-turn text completions with bounded retries.

Invariants:
    - Retried: 429 (honouring Retry-After), 5xx, 529 overloaded, connection drops
    - Not retried: timeouts (the customer is waiting on this reply) and other 4xx
    - At most max_retries + 1 calls per completion
    - Every failure leaves as ExternalServiceError("anthropic", ...)

Design Decisions:
    - The SDK's own retries are disabled (max_retries=0); one policy, one place
    - Backoff doubles from base_delay_ms up to max_delay_ms with ±25% jitter
"""

import asyncio
import logging
import random

import anthropic
from anthropic import (
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    RateLimitError,
)

from chatshop.core.errors import ErrorContext, ExternalServiceError

logger = logging.getLogger(__name__)

SERVICE = "anthropic"
_OVERLOADED = 529


class ResilientAnthropicClient:
    def __init__(
        self,
        api_key: str,
        max_retries: int = 2,
        base_delay_ms: int = 500,
        max_delay_ms: int = 8_000,
        timeout_seconds: int = 30,
        client: anthropic.AsyncAnthropic | None = None,
    ):
        self.client = client or anthropic.AsyncAnthropic(
            api_key=api_key, timeout=timeout_seconds, max_retries=0,
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def create_text(
        self,
        *,
        model: str,
        max_tokens: int,
        system: str,
        prompt: str,
        context: ErrorContext | None = None,
    ) -> str:
        """Returns the response's text blocks joined and stripped."""
        last_error: APIError | None = None
        for attempt in range(self.max_retries + 1):
            if last_error is not None:
                delay_ms = self._delay_ms(last_error, attempt - 1)
                logger.warning(
                    f"Anthropic {type(last_error).__name__}, retrying in {delay_ms}ms",
                    extra={"attempt": attempt, "command": context.command if context else None},
                )
                await asyncio.sleep(delay_ms / 1000)
            try:
                response = await self.client.messages.create(
                    model=model,
                    max_tokens=max_tokens,
                    system=system,
                    messages=[{"role": "user", "content": prompt}],
                )
            except APIError as e:
                reason = _fatal_reason(e)
                if reason is not None:
                    raise ExternalServiceError(SERVICE, reason, context) from e
                last_error = e
                continue

            usage = response.usage
            logger.info(
                "Anthropic completion",
                extra={"attempt": attempt + 1, "input_tokens": usage.input_tokens,
                       "output_tokens": usage.output_tokens},
            )
            return "".join(
                block.text for block in response.content
                if getattr(block, "type", None) == "text"
            ).strip()

        raise ExternalServiceError(
            SERVICE, f"gave up after {self.max_retries + 1} attempts: {last_error}", context,
        )

    def _delay_ms(self, error: APIError, attempt: int) -> int:
        if isinstance(error, RateLimitError):
            retry_after = _retry_after_ms(error)
            if retry_after is not None:
                return retry_after
        delay = min(self.max_delay_ms, self.base_delay_ms * 2 ** attempt)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311


def _fatal_reason(error: APIError) -> str | None:
    """Why a retry cannot fix this error, or None when it is transient."""
    # APITimeoutError subclasses APIConnectionError, so it is checked first
    if isinstance(error, APITimeoutError):
        return "API timeout"
    if isinstance(error, APIConnectionError):
        return None
    if isinstance(error, APIStatusError) and (
        error.status_code in (429, _OVERLOADED) or error.status_code >= 500
    ):
        return None
    return f"client error: {error}"


def _retry_after_ms(error: RateLimitError) -> int | None:
    response = getattr(error, "response", None)
    value = response.headers.get("retry-after") if response is not None else None
    if value and value.isdigit():
        return int(value) * 1000
    return None
