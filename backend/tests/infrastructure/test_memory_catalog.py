"""In-Memory Product Catalog — stock floor and edits."""

import asyncio
from decimal import Decimal

import pytest

from chatshop.core.product import Product
from chatshop.infrastructure.memory_catalog import DEFAULT_PRODUCTS, InMemoryProductCatalog


@pytest.fixture
def catalog():
    return InMemoryProductCatalog([Product("netflix", "Netflix", Decimal("5"), stock=2)])


async def test_decrement_never_below_zero(catalog):
    results = [await catalog.decrement_stock("netflix") for _ in range(5)]
    assert results == [True, True, False, False, False]
    assert (await catalog.get_by_id("netflix")).stock == 0


async def test_concurrent_decrements_respect_floor(catalog):
    results = await asyncio.gather(*[catalog.decrement_stock("netflix") for _ in range(10)])
    assert results.count(True) == 2
    assert (await catalog.get_by_id("netflix")).stock == 0


async def test_decrement_unknown_product(catalog):
    assert await catalog.decrement_stock("no-such-id") is False


async def test_set_stock(catalog):
    updated = await catalog.set_stock("netflix", 9)
    assert updated.stock == 9
    assert await catalog.is_in_stock("netflix")
    assert await catalog.set_stock("no-such-id", 1) is None
    with pytest.raises(ValueError):
        await catalog.set_stock("netflix", -1)


async def test_add_rejects_duplicates(catalog):
    assert await catalog.add(Product("hbo", "HBO", Decimal("3")))
    assert not await catalog.add(Product("hbo", "HBO 2", Decimal("4")))
    assert [p.id for p in await catalog.get_all()] == ["netflix", "hbo"]


async def test_update_fields(catalog):
    assert (await catalog.update("netflix", "price", "4.50")).price_usd == Decimal("4.50")
    assert (await catalog.update("netflix", "name", "Netflix HD")).name == "Netflix HD"
    assert (await catalog.update("netflix", "description", "HD")).description == "HD"
    assert await catalog.update("no-such-id", "name", "x") is None
    with pytest.raises(ValueError):
        await catalog.update("netflix", "stock", "3")


async def test_remove(catalog):
    assert await catalog.remove("netflix")
    assert not await catalog.remove("netflix")


def test_default_catalog_ids_are_unique():
    ids = [p.id for p in DEFAULT_PRODUCTS]
    assert len(ids) == len(set(ids))
