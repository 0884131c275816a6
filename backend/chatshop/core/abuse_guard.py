"""Abuse Guard — sliding-window message limiter, error cooldown, daily order cap.

Invariants:
    - Rejected messages are not counted toward the message window
    - can_place_order never consumes a slot; record_order does, after checkout succeeds
    - Message window and order window are independent
    - A cooldown starts after error_threshold consecutive errors and resets the streak

Design Decisions:
    - Injectable clock: windows are testable without sleeping
    - deque per customer, pruned on read: O(window) memory, no background timer
    - Pure in-memory state: single-process uvicorn; the guard never writes audit
      events itself, the conversation engine records them from the decision
    - Rejections are returned as GuardDecision values, never raised
"""

import math
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, replace

from chatshop.core import format_messages
from chatshop.core.domain_types import SecurityReason


@dataclass(frozen=True)
class GuardLimits:
    message_limit: int = 20
    message_window_seconds: int = 60
    order_limit: int = 5
    order_window_seconds: int = 86_400
    error_threshold: int = 3
    error_cooldown_seconds: int = 60


@dataclass(frozen=True)
class GuardDecision:
    allowed: bool
    reason: SecurityReason | None = None
    message: str | None = None
    wait_seconds: int = 0
    limit: int | None = None


@dataclass(frozen=True)
class CooldownDecision:
    in_cooldown: bool
    message: str | None = None
    wait_seconds: int = 0


ALLOWED = GuardDecision(allowed=True)
NOT_IN_COOLDOWN = CooldownDecision(in_cooldown=False)


class AbuseGuard:
    """Per-customer abuse controls — pure in-memory state, no IO."""

    def __init__(
        self,
        limits: GuardLimits | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.limits = limits or GuardLimits()
        self._clock = clock
        self._messages: dict[str, deque[float]] = {}
        self._orders: dict[str, deque[float]] = {}
        self._error_streaks: dict[str, int] = {}
        self._cooldown_until: dict[str, float] = {}

    def update_limits(self, **changes: int) -> None:
        self.limits = replace(self.limits, **changes)

    # ─── Message rate ────────────────────────────────────────────

    def can_send_message(self, customer_id: str) -> GuardDecision:
        """Admit and count one message, or reject with the remaining wait."""
        now = self._clock()
        window = self._pruned(
            self._messages, customer_id, now, self.limits.message_window_seconds,
        )
        limit = self.limits.message_limit
        if len(window) >= limit:
            wait = _remaining(window[0], self.limits.message_window_seconds, now)
            return GuardDecision(
                allowed=False,
                reason=SecurityReason.RATE_LIMIT,
                message=format_messages.rate_limited(limit, wait),
                wait_seconds=wait,
                limit=limit,
            )
        window.append(now)
        return ALLOWED

    # ─── Orders ──────────────────────────────────────────────────

    def can_place_order(self, customer_id: str) -> GuardDecision:
        now = self._clock()
        window = self._pruned(
            self._orders, customer_id, now, self.limits.order_window_seconds,
        )
        limit = self.limits.order_limit
        if len(window) >= limit:
            wait = _remaining(window[0], self.limits.order_window_seconds, now)
            return GuardDecision(
                allowed=False,
                reason=SecurityReason.ORDER_LIMIT,
                message=format_messages.order_limit_reached(limit, wait),
                wait_seconds=wait,
                limit=limit,
            )
        return ALLOWED

    def record_order(self, customer_id: str) -> None:
        self._orders.setdefault(customer_id, deque()).append(self._clock())

    # ─── Error cooldown ──────────────────────────────────────────

    def is_in_cooldown(self, customer_id: str) -> CooldownDecision:
        until = self._cooldown_until.get(customer_id)
        if until is None:
            return NOT_IN_COOLDOWN
        now = self._clock()
        if now >= until:
            del self._cooldown_until[customer_id]
            return NOT_IN_COOLDOWN
        wait = max(1, math.ceil(until - now))
        return CooldownDecision(
            in_cooldown=True,
            message=format_messages.cooldown_active(wait),
            wait_seconds=wait,
        )

    def record_error(self, customer_id: str) -> bool:
        """Count a handler error. Returns True when this error started a cooldown."""
        streak = self._error_streaks.get(customer_id, 0) + 1
        if streak >= self.limits.error_threshold:
            self._error_streaks.pop(customer_id, None)
            self._cooldown_until[customer_id] = (
                self._clock() + self.limits.error_cooldown_seconds
            )
            return True
        self._error_streaks[customer_id] = streak
        return False

    def clear_errors(self, customer_id: str) -> None:
        self._error_streaks.pop(customer_id, None)

    # ─── Housekeeping ────────────────────────────────────────────

    def cleanup(self) -> int:
        """Drop empty windows and expired cooldowns. Returns entries removed."""
        now = self._clock()
        removed = 0
        for store, span in (
            (self._messages, self.limits.message_window_seconds),
            (self._orders, self.limits.order_window_seconds),
        ):
            for customer_id in list(store):
                if not self._pruned(store, customer_id, now, span):
                    del store[customer_id]
                    removed += 1
        for customer_id, until in list(self._cooldown_until.items()):
            if now >= until:
                del self._cooldown_until[customer_id]
                removed += 1
        return removed

    def _pruned(
        self, store: dict[str, deque[float]], customer_id: str,
        now: float, span: int,
    ) -> deque[float]:
        window = store.setdefault(customer_id, deque())
        while window and window[0] <= now - span:
            window.popleft()
        return window


def _remaining(oldest: float, span: int, now: float) -> int:
    return max(1, math.ceil(oldest + span - now))
