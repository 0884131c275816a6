"""Product Resolver — maps free text to a single catalog product.

Invariants:
    - Empty (after trim) query resolves to None
    - Exact id or exact name (any case) always resolves to that product
    - levenshtein(a, a) == 0 and levenshtein(a, b) == levenshtein(b, a)
    - Fuzzy ties keep the catalog-order-first product

Design Decisions:
    - Full catalog scan per query: catalogs are small, no index structure
    - Two-row DP for edit distance: O(len(a) * len(b)) time, O(min) memory
"""

from collections.abc import Sequence

from chatshop.core.product import Product

FUZZY_THRESHOLD = 3


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit-cost substitution, insertion and deletion."""
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,                        # deletion
                current[j - 1] + 1,                     # insertion
                previous[j - 1] + (char_a != char_b),   # substitution
            ))
        previous = current
    return previous[-1]


def resolve_product(query: str, products: Sequence[Product]) -> Product | None:
    """First match wins: exact id, exact name, substring, then fuzzy."""
    needle = query.strip().lower()
    if not needle:
        return None
    return (
        _match_exact(needle, products)
        or _match_substring(needle, products)
        or _match_fuzzy(needle, products)
    )


def _match_exact(needle: str, products: Sequence[Product]) -> Product | None:
    for product in products:
        if product.id.lower() == needle:
            return product
    # A longer name containing this one must not shadow it in the substring pass
    for product in products:
        if product.name.lower() == needle:
            return product
    return None


def _match_substring(needle: str, products: Sequence[Product]) -> Product | None:
    for product in products:
        if needle in product.name.lower() or needle in product.id.lower():
            return product
    return None


def _match_fuzzy(needle: str, products: Sequence[Product]) -> Product | None:
    best: Product | None = None
    best_distance = FUZZY_THRESHOLD + 1
    for product in products:
        distance = min(
            levenshtein(needle, product.name.lower()),
            levenshtein(needle, product.id.lower()),
        )
        if distance == 0:
            return product
        if distance < best_distance:
            best, best_distance = product, distance
    return best
