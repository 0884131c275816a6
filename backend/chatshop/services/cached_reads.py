"""Cached Reads — TTL-memoized catalog and settings access for the conversation path.

Invariants:
    - Browsing and resolution reads may be up to products_ttl stale
    - Stock checks (is_in_stock, decrement) always go to the catalog, never the cache
    - Every catalog or settings mutation invalidates the keys it affects
      before returning

Design Decisions:
    - CachedCatalog satisfies the ProductCatalog protocol, so handlers do not
      know whether they read through a cache
    - Namespaced keys: "product:<id>", "products:all", "settings:all"
"""

from collections.abc import Awaitable, Callable
from typing import Any

from chatshop.core.domain_types import ProductId
from chatshop.core.product import Product
from chatshop.core.repository_protocols import ProductCatalog
from chatshop.core.result import Ok, Result
from chatshop.core.runtime_settings import RuntimeSettings, SettingChange
from chatshop.core.ttl_cache import MISSING, TTLCache

ALL_PRODUCTS_KEY = "products:all"
SETTINGS_KEY = "settings:all"


def product_key(product_id: str) -> str:
    return f"product:{product_id}"


async def get_or_set(
    cache: TTLCache, key: str, fetch: Callable[[], Awaitable[Any]], ttl: float,
) -> Any:
    value = cache.get(key)
    if value is MISSING:
        value = await fetch()
        cache.set(key, value, ttl)
    return value


class CachedCatalog:
    def __init__(self, inner: ProductCatalog, cache: TTLCache, ttl_seconds: float = 300):
        self._inner = inner
        self._cache = cache
        self._ttl = ttl_seconds

    async def get_by_id(self, product_id: ProductId) -> Product | None:
        return await get_or_set(
            self._cache, product_key(product_id),
            lambda: self._inner.get_by_id(product_id), self._ttl,
        )

    async def get_all(self) -> list[Product]:
        return await get_or_set(
            self._cache, ALL_PRODUCTS_KEY, self._inner.get_all, self._ttl,
        )

    async def is_in_stock(self, product_id: ProductId) -> bool:
        return await self._inner.is_in_stock(product_id)

    async def get_fresh(self, product_id: ProductId) -> Product | None:
        return await self._inner.get_by_id(product_id)

    async def decrement_stock(self, product_id: ProductId, quantity: int = 1) -> bool:
        ok = await self._inner.decrement_stock(product_id, quantity)
        self._invalidate(product_id)
        return ok

    async def set_stock(self, product_id: ProductId, quantity: int) -> Product | None:
        updated = await self._inner.set_stock(product_id, quantity)
        self._invalidate(product_id)
        return updated

    async def add(self, product: Product) -> bool:
        added = await self._inner.add(product)
        self._invalidate(product.id)
        return added

    async def update(
        self, product_id: ProductId, field: str, value: str,
    ) -> Product | None:
        updated = await self._inner.update(product_id, field, value)
        self._invalidate(product_id)
        return updated

    async def remove(self, product_id: ProductId) -> bool:
        removed = await self._inner.remove(product_id)
        self._invalidate(product_id)
        return removed

    def _invalidate(self, product_id: str) -> None:
        self._cache.delete(product_key(product_id))
        self._cache.delete(ALL_PRODUCTS_KEY)


class CachedSettings:
    def __init__(self, inner: RuntimeSettings, cache: TTLCache, ttl_seconds: float = 600):
        self._inner = inner
        self._cache = cache
        self._ttl = ttl_seconds

    def snapshot(self) -> dict[str, Any]:
        values = self._cache.get(SETTINGS_KEY)
        if values is MISSING:
            values = self._inner.snapshot()
            self._cache.set(SETTINGS_KEY, values, self._ttl)
        return values

    def get(self, key: str) -> Any:
        return self.snapshot()[key]

    def update(self, key: str, raw_value: str) -> Result[SettingChange]:
        result = self._inner.update(key, raw_value)
        match result:
            case Ok():
                self._cache.delete(SETTINGS_KEY)
        return result
