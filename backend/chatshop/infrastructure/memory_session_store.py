"""In-Memory Session Store — SessionStore implementation for a single process.

Invariants:
    - Every read returns a detached snapshot (callers cannot mutate stored state)
    - compare_and_set_step is atomic: check and write happen under one lock
    - expire_inactive never resets a session awaiting admin approval
      (its order would become unapprovable)

Design Decisions:
    - In-memory dict, not DB/Redis: single-process uvicorn (sessions are
      conversational scratch state; orders survive in the audit table)
    - One asyncio.Lock for the whole store: operations are O(1) dict work,
      contention is negligible next to the per-customer engine lock
"""

import asyncio
import logging
import time
from collections.abc import Callable

from chatshop.core.domain_types import CustomerId, OrderId, Step
from chatshop.core.session_state import CartItem, PaymentMethod, Session

logger = logging.getLogger(__name__)


class InMemorySessionStore:
    """Dict-backed sessions keyed by customer id."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._sessions: dict[str, Session] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def _touch(self, customer_id: CustomerId) -> Session:
        session = self._sessions.get(customer_id)
        if session is None:
            session = Session(customer_id=customer_id, last_activity=self._clock())
            self._sessions[customer_id] = session
        else:
            session.last_activity = self._clock()
        return session

    async def get_session(self, customer_id: CustomerId) -> Session:
        async with self._lock:
            return self._touch(customer_id).snapshot()

    async def get_step(self, customer_id: CustomerId) -> str:
        async with self._lock:
            return self._touch(customer_id).step

    async def set_step(self, customer_id: CustomerId, step: Step) -> None:
        async with self._lock:
            self._touch(customer_id).step = step.value

    async def compare_and_set_step(
        self, customer_id: CustomerId, expected: Step, new: Step,
    ) -> bool:
        async with self._lock:
            session = self._sessions.get(customer_id)
            if session is None or session.step != expected.value:
                return False
            session.step = new.value
            return True

    async def get_cart(self, customer_id: CustomerId) -> list[CartItem]:
        async with self._lock:
            return list(self._touch(customer_id).cart)

    async def add_to_cart(self, customer_id: CustomerId, item: CartItem) -> int:
        async with self._lock:
            session = self._touch(customer_id)
            session.cart.append(item)
            return len(session.cart)

    async def clear_cart(self, customer_id: CustomerId) -> None:
        async with self._lock:
            self._touch(customer_id).cart.clear()

    async def get_order_id(self, customer_id: CustomerId) -> OrderId | None:
        async with self._lock:
            return self._touch(customer_id).order_id

    async def set_order_id(self, customer_id: CustomerId, order_id: OrderId) -> None:
        async with self._lock:
            self._touch(customer_id).order_id = order_id

    async def get_payment_method(self, customer_id: CustomerId) -> PaymentMethod | None:
        async with self._lock:
            return self._touch(customer_id).payment_method

    async def set_payment_method(
        self, customer_id: CustomerId, method: PaymentMethod | None,
    ) -> None:
        async with self._lock:
            self._touch(customer_id).payment_method = method

    async def find_by_order_id(self, order_id: OrderId) -> Session | None:
        async with self._lock:
            for session in self._sessions.values():
                if session.order_id == order_id:
                    return session.snapshot()
            return None

    async def list_customer_ids(self) -> list[CustomerId]:
        async with self._lock:
            return [CustomerId(cid) for cid in self._sessions]

    async def count(self) -> int:
        async with self._lock:
            return len(self._sessions)

    async def expire_inactive(self, max_idle_seconds: float) -> int:
        """Reset idle sessions to a fresh menu state. Returns how many were reset."""
        cutoff = self._clock() - max_idle_seconds
        reset = 0
        async with self._lock:
            for customer_id, session in list(self._sessions.items()):
                if session.last_activity > cutoff:
                    continue
                if session.step == Step.AWAITING_ADMIN_APPROVAL.value:
                    continue
                del self._sessions[customer_id]
                reset += 1
        if reset:
            logger.info(f"Expired {reset} inactive session(s)")
        return reset
