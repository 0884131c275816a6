"""Customer Locks — one asyncio.Lock per customer id.

Invariants:
    - All read-then-write work on one customer's session runs under that
      customer's lock (inbound messages and admin approvals alike)
    - prune() only drops unheld locks of customers without a live session
"""

import asyncio


class CustomerLocks:
    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}

    def for_customer(self, customer_id: str) -> asyncio.Lock:
        lock = self._locks.get(customer_id)
        if lock is None:
            lock = self._locks[customer_id] = asyncio.Lock()
        return lock

    def prune(self, live_customer_ids: set[str]) -> int:
        idle = [
            cid for cid, lock in self._locks.items()
            if cid not in live_customer_ids and not lock.locked()
        ]
        for customer_id in idle:
            del self._locks[customer_id]
        return len(idle)

    def __len__(self) -> int:
        return len(self._locks)
