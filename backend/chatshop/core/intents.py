"""Intents — input sanitizing and the keyword tables that drive routing.

Invariants:
    - sanitize_message output has no NUL bytes, no surrounding whitespace,
      and at most MAX_MESSAGE_LENGTH characters
    - Keyword tables hold lowercase, already-stripped words
"""

MAX_MESSAGE_LENGTH = 1000

MENU_WORDS = frozenset({"menu", "help"})
CART_WORDS = frozenset({"cart"})
HISTORY_WORDS = frozenset({"history", "/history", "orders"})

BROWSE_WORDS = frozenset({"1", "browse", "products", "catalog"})
ABOUT_WORDS = frozenset({"3", "about"})
SUPPORT_WORDS = frozenset({"4", "support", "contact"})

CHECKOUT_WORDS = frozenset({"checkout", "buy", "order"})
CLEAR_WORDS = frozenset({"clear", "empty"})
CHECK_STATUS_WORDS = frozenset({"check", "cek", "status"})

QUESTION_WORDS = (
    "what", "which", "how", "why", "when", "where", "who",
    "can", "does", "is", "recommend", "suggest", "difference",
)


def sanitize_message(text: str) -> str:
    return text.replace("\x00", "").strip()[:MAX_MESSAGE_LENGTH]


def looks_like_question(message: str) -> bool:
    lowered = message.lower()
    if "?" in lowered:
        return True
    first_word = lowered.split(maxsplit=1)[0] if lowered else ""
    return first_word in QUESTION_WORDS
