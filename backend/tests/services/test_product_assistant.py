"""Tests: AI product assistant — prompt content and the browsing fallback.

Invariants:
    - Prompts carry catalog data only
    - With AI disabled or failing, browsing falls back to "product not found"
"""

from decimal import Decimal
from types import SimpleNamespace

from chatshop.core.domain_types import ProductId
from chatshop.core.errors import ExternalServiceError
from chatshop.core.product import Product
from chatshop.infrastructure.anthropic_client import ResilientAnthropicClient
from chatshop.services.product_assistant import AnthropicProductAssistant

QUESTION = "which plan has 4k video?"


class RecordingMessages:
    def __init__(self, text="Netflix Premium streams in 4K.", error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(
            content=[SimpleNamespace(type="text", text=self.text)],
            usage=SimpleNamespace(input_tokens=40, output_tokens=12),
        )


def _assistant(messages):
    client = ResilientAnthropicClient(
        "sk-test", max_retries=0, client=SimpleNamespace(messages=messages),
    )
    return AnthropicProductAssistant(client, "test-model", max_tokens=120)


async def test_answer_prompt_lists_catalog(inner_catalog):
    messages = RecordingMessages()
    assistant = _assistant(messages)

    answer = await assistant.answer_question(QUESTION, await inner_catalog.get_all())

    assert answer == "Netflix Premium streams in 4K."
    [call] = messages.calls
    assert call["model"] == "test-model"
    assert call["max_tokens"] == 120
    prompt = call["messages"][0]["content"]
    assert "- Netflix Premium (id netflix): $5.00, in stock. 4K UHD" in prompt
    assert "- YouTube Premium (id youtube): $1.00, out of stock" in prompt
    assert prompt.endswith(f"Question: {QUESTION}")


async def test_answer_with_empty_catalog():
    messages = RecordingMessages()
    await _assistant(messages).answer_question(QUESTION, [])
    assert "(catalog is empty)" in messages.calls[0]["messages"][0]["content"]


async def test_description_prompt():
    messages = RecordingMessages(text="  Great music, no ads.  ")
    product = Product(ProductId("tidal"), "Tidal HiFi", Decimal("3.00"), stock=2,
                      category="music")

    text = await _assistant(messages).generate_description(product)

    assert text == "Great music, no ads."
    prompt = messages.calls[0]["messages"][0]["content"]
    assert "Product: Tidal HiFi" in prompt
    assert "Category: music" in prompt
    assert "Current description: (none)" in prompt


# ─── Browsing fallback ───────────────────────────────────────────

async def test_question_answered_when_ai_enabled(flow, ctx):
    messages = RecordingMessages()
    ctx.assistant = _assistant(messages)
    ctx.settings.update("ai_enabled", "true")

    await flow.say("1")
    reply = await flow.say(QUESTION)

    assert reply.message == "Netflix Premium streams in 4K."
    assert "628123456789" not in messages.calls[0]["messages"][0]["content"]


async def test_question_not_answered_when_ai_disabled(flow, ctx):
    messages = RecordingMessages()
    ctx.assistant = _assistant(messages)

    await flow.say("1")
    reply = await flow.say(QUESTION)

    assert "couldn't find a product" in reply.message
    assert messages.calls == []


async def test_non_question_skips_ai(flow, ctx):
    messages = RecordingMessages()
    ctx.assistant = _assistant(messages)
    ctx.settings.update("ai_enabled", "true")

    await flow.say("1")
    reply = await flow.say("zzzzzzzzzz")

    assert "couldn't find a product" in reply.message
    assert messages.calls == []


async def test_ai_failure_falls_back(flow, ctx):
    failing = ExternalServiceError("anthropic", "API timeout")

    class FailingAssistant:
        async def answer_question(self, question, products):
            raise failing

        async def generate_description(self, product):
            raise failing

    ctx.assistant = FailingAssistant()
    ctx.settings.update("ai_enabled", "true")

    await flow.say("1")
    reply = await flow.say(QUESTION)

    assert "couldn't find a product" in reply.message
    assert await flow.step() == "browsing"
