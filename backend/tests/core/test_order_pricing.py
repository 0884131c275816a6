"""Order Pricing — totals, IDR conversion, stock validation, order ids.

Tests cover:
    - netflix $5 + spotify $2 at 15800 → 7 USD, 110600 IDR
    - Half-up rounding of fractional IDR
    - Any stock shortfall (including duplicates and removed products) → Err
    - Order id format and strict monotonicity within one millisecond
"""

from decimal import Decimal

from chatshop.core.order_pricing import (
    OrderIdAllocator, convert_to_idr, customer_suffix, find_unavailable,
    quote_checkout,
)
from chatshop.core.result import Err, Ok
from chatshop.core.session_state import CartItem

NETFLIX = CartItem("netflix", "Netflix Premium", Decimal("5"))
SPOTIFY = CartItem("spotify", "Spotify Premium", Decimal("2"))


def test_worked_example_totals():
    match quote_checkout([NETFLIX, SPOTIFY], {"netflix": 3, "spotify": 3}, 15_800):
        case Ok(value=quote):
            assert quote.total_usd == Decimal("7")
            assert quote.total_idr == 110_600
            assert quote.item_count == 2
        case Err():
            raise AssertionError("expected a quote")


def test_idr_rounds_half_up():
    assert convert_to_idr(Decimal("0.50"), 1) == 1
    assert convert_to_idr(Decimal("1.25"), 2) == 3
    assert convert_to_idr(Decimal("1.99"), 15_800) == 31_442


def test_out_of_stock_rejects_whole_cart():
    result = quote_checkout([NETFLIX, SPOTIFY], {"netflix": 3, "spotify": 0}, 15_800)
    assert isinstance(result, Err)
    assert result.error.code == "OUT_OF_STOCK"
    assert "Spotify Premium" in result.message


def test_duplicate_items_need_enough_stock():
    assert find_unavailable([NETFLIX, NETFLIX], {"netflix": 1}) == ["Netflix Premium"]
    assert find_unavailable([NETFLIX, NETFLIX], {"netflix": 2}) == []


def test_removed_product_is_unavailable():
    assert find_unavailable([SPOTIFY], {"spotify": None}) == ["Spotify Premium"]


def test_customer_suffix():
    assert customer_suffix("628123456789@c.us") == "6789"
    assert customer_suffix("+62 81") == "6281"
    assert customer_suffix("12") == "0012"


def test_order_id_format():
    allocator = OrderIdAllocator(clock_ms=lambda: 1_700_000_000_000)
    order_id = allocator.allocate("628123456789")
    assert order_id == "ORD-1700000000000-6789"


def test_same_millisecond_ids_never_collide():
    allocator = OrderIdAllocator(clock_ms=lambda: 1_700_000_000_000)
    ids = [allocator.allocate("628123456789") for _ in range(50)]
    assert len(set(ids)) == 50
    stamps = [int(i.split("-")[1]) for i in ids]
    assert stamps == sorted(stamps)


def test_clock_going_backwards_still_increases():
    ticks = iter([2_000, 1_000, 1_500])
    allocator = OrderIdAllocator(clock_ms=lambda: next(ticks))
    stamps = [int(allocator.allocate("1234").split("-")[1]) for _ in range(3)]
    assert stamps == [2_000, 2_001, 2_002]
