"""Product Assistant — catalog-grounded answers and descriptions via Anthropic.

Invariants:
    - Prompts carry only catalog data (name, price, stock flag, description),
      never customer ids or session state
    - Failures surface as ExternalServiceError from ResilientAnthropicClient;
      callers decide the fallback

Design Decisions:
    - Single-turn completions: no tool use, no conversation memory
"""

from chatshop.core.errors import ErrorContext
from chatshop.core.format_messages import format_usd
from chatshop.core.product import Product
from chatshop.infrastructure.anthropic_client import ResilientAnthropicClient

ANSWER_SYSTEM = (
    "You are the shop assistant of a small digital-goods store that sells over chat. "
    "Answer the customer's question in at most three short sentences, using only "
    "the catalog below. If the catalog does not answer it, say so and suggest "
    "typing 'menu'. Never invent products, prices or stock."
)

DESCRIPTION_SYSTEM = (
    "You write product descriptions for a chat storefront. "
    "Write two or three plain-text sentences, no markdown, no prices."
)


def _catalog_lines(products: list[Product]) -> str:
    lines = []
    for p in products:
        availability = "in stock" if p.in_stock else "out of stock"
        line = f"- {p.name} (id {p.id}): {format_usd(p.price_usd)}, {availability}"
        if p.description:
            line += f". {p.description}"
        lines.append(line)
    return "\n".join(lines) or "(catalog is empty)"


class AnthropicProductAssistant:
    def __init__(
        self,
        client: ResilientAnthropicClient,
        model: str,
        max_tokens: int = 300,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    async def answer_question(self, question: str, products: list[Product]) -> str:
        prompt = f"Catalog:\n{_catalog_lines(products)}\n\nQuestion: {question}"
        return await self.client.create_text(
            model=self.model,
            max_tokens=self.max_tokens,
            system=ANSWER_SYSTEM,
            prompt=prompt,
            context=ErrorContext(command="answer_question"),
        )

    async def generate_description(self, product: Product) -> str:
        prompt = (
            f"Product: {product.name}\n"
            f"Category: {product.category}\n"
            f"Current description: {product.description or '(none)'}"
        )
        return await self.client.create_text(
            model=self.model,
            max_tokens=self.max_tokens,
            system=DESCRIPTION_SYSTEM,
            prompt=prompt,
            context=ErrorContext(command="generate_description", debug_info={"product_id": product.id}),
        )
