"""Product Resolver — edit distance properties and match precedence.

Tests cover:
    - levenshtein identity, symmetry, known distances
    - Exact id / exact name in any case
    - Substring and fuzzy matches, threshold, catalog-order tie-break
"""

from decimal import Decimal

import pytest

from chatshop.core.product import Product
from chatshop.core.product_resolver import FUZZY_THRESHOLD, levenshtein, resolve_product


def _p(pid, name):
    return Product(pid, name, Decimal("1.00"), stock=1)


CATALOG = [
    _p("netflix", "Netflix Premium"),
    _p("spotify", "Spotify Premium"),
    _p("vcc-basic", "Virtual Credit Card - Basic"),
]


@pytest.mark.parametrize("word", ["", "a", "netflix", "Virtual Credit Card"])
def test_distance_to_self_is_zero(word):
    assert levenshtein(word, word) == 0


@pytest.mark.parametrize("a,b", [("kitten", "sitting"), ("", "abc"), ("flaw", "lawn")])
def test_distance_is_symmetric(a, b):
    assert levenshtein(a, b) == levenshtein(b, a)


def test_known_distances():
    assert levenshtein("kitten", "sitting") == 3
    assert levenshtein("", "abc") == 3
    assert levenshtein("netflx", "netflix") == 1


@pytest.mark.parametrize("query", ["netflix", "NETFLIX", "  Netflix  "])
def test_exact_id_any_case(query):
    assert resolve_product(query, CATALOG).id == "netflix"


def test_exact_name_any_case():
    assert resolve_product("spotify premium", CATALOG).id == "spotify"
    assert resolve_product("VIRTUAL CREDIT CARD - BASIC", CATALOG).id == "vcc-basic"


def test_exact_name_not_shadowed_by_longer_name():
    catalog = [_p("combo", "Netflix Premium Family"), _p("solo", "Netflix Premium")]
    assert resolve_product("netflix premium", catalog).id == "solo"


def test_substring_match():
    assert resolve_product("credit", CATALOG).id == "vcc-basic"


def test_fuzzy_match_within_threshold():
    assert resolve_product("netflx", CATALOG).id == "netflix"
    assert resolve_product("spotfy", CATALOG).id == "spotify"


def test_fuzzy_beyond_threshold_is_none():
    assert resolve_product("zzzzzzzzzzzz", CATALOG) is None
    assert FUZZY_THRESHOLD == 3


def test_empty_query_is_none():
    assert resolve_product("   ", CATALOG) is None


def test_fuzzy_tie_returns_catalog_first():
    catalog = [_p("abcd", "Alpha"), _p("abce", "Beta")]
    # "abcx" is one edit from both ids
    assert resolve_product("abcx", catalog).id == "abcd"
    assert resolve_product("abcx", list(reversed(catalog))).id == "abce"
