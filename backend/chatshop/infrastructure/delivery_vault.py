"""Delivery Vault — deliverable codes (account credentials, card numbers) per product.

Invariants:
    - take_codes is all-or-nothing: either one code per requested product id is
      removed and returned (in request order), or nothing is removed
    - A code is handed out at most once

Design Decisions:
    - One text file per product (<product_id>.txt, one code per line) loaded at
      startup; codes are consumed in memory
    - Code formats "email:password", "email|password" or a raw string are all
      stored verbatim; formatting happens in core/format_messages
"""

import asyncio
import logging
from collections import Counter, deque
from pathlib import Path

from chatshop.core.domain_types import ProductId

logger = logging.getLogger(__name__)


class InMemoryDeliveryVault:
    """FIFO queues of codes keyed by product id."""

    def __init__(self, codes: dict[str, list[str]] | None = None):
        self._codes: dict[str, deque[str]] = {
            pid: deque(values) for pid, values in (codes or {}).items()
        }
        self._lock = asyncio.Lock()

    @classmethod
    def from_directory(cls, directory: str | Path) -> "InMemoryDeliveryVault":
        """Load <product_id>.txt files; blank lines and # comments are skipped."""
        path = Path(directory)
        codes: dict[str, list[str]] = {}
        if not path.is_dir():
            logger.warning(f"Delivery directory {path} not found; vault is empty")
            return cls()
        for file in sorted(path.glob("*.txt")):
            lines = file.read_text(encoding="utf-8").splitlines()
            codes[file.stem.lower()] = [
                line.strip() for line in lines
                if line.strip() and not line.lstrip().startswith("#")
            ]
        logger.info(f"Loaded delivery codes for {len(codes)} product(s) from {path}")
        return cls(codes)

    async def take_codes(self, product_ids: list[ProductId]) -> list[str] | None:
        async with self._lock:
            needed = Counter(product_ids)
            for product_id, count in needed.items():
                if len(self._codes.get(product_id, ())) < count:
                    return None
            return [self._codes[pid].popleft() for pid in product_ids]

    async def available(self, product_id: ProductId) -> int:
        return len(self._codes.get(product_id, ()))
