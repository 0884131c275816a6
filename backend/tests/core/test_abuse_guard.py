"""Abuse Guard — message rate window, order cap, error cooldown.

Tests cover:
    - (N+1)-th message in the window rejected, accepted after the window
    - Rejected messages do not extend the window
    - Order cap checked by can_place_order, counted by record_order
    - Error streak starts a cooldown at the threshold; clear_errors resets it
    - update_limits and cleanup
"""

from chatshop.core.abuse_guard import AbuseGuard, GuardLimits
from chatshop.core.domain_types import SecurityReason


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _guard(**limits):
    clock = Clock()
    return AbuseGuard(GuardLimits(**limits), clock=clock), clock


def test_message_limit_rejects_n_plus_one():
    guard, _ = _guard(message_limit=3, message_window_seconds=60)
    for _ in range(3):
        assert guard.can_send_message("c1").allowed
    decision = guard.can_send_message("c1")
    assert not decision.allowed
    assert decision.reason is SecurityReason.RATE_LIMIT
    assert decision.limit == 3
    assert 0 < decision.wait_seconds <= 60
    assert "too fast" in decision.message


def test_message_accepted_after_window():
    guard, clock = _guard(message_limit=2, message_window_seconds=60)
    guard.can_send_message("c1")
    guard.can_send_message("c1")
    assert not guard.can_send_message("c1").allowed
    clock.now += 61
    assert guard.can_send_message("c1").allowed


def test_rejected_messages_are_not_counted():
    guard, clock = _guard(message_limit=1, message_window_seconds=60)
    guard.can_send_message("c1")
    clock.now += 30
    for _ in range(5):
        assert not guard.can_send_message("c1").allowed
    clock.now += 31
    assert guard.can_send_message("c1").allowed


def test_limits_are_per_customer():
    guard, _ = _guard(message_limit=1)
    assert guard.can_send_message("c1").allowed
    assert guard.can_send_message("c2").allowed


def test_order_cap():
    guard, clock = _guard(order_limit=2, order_window_seconds=86_400)
    assert guard.can_place_order("c1").allowed
    # Checking alone never consumes a slot
    assert guard.can_place_order("c1").allowed
    guard.record_order("c1")
    guard.record_order("c1")
    decision = guard.can_place_order("c1")
    assert not decision.allowed
    assert decision.reason is SecurityReason.ORDER_LIMIT
    clock.now += 86_401
    assert guard.can_place_order("c1").allowed


def test_error_streak_starts_cooldown():
    guard, clock = _guard(error_threshold=3, error_cooldown_seconds=60)
    assert guard.record_error("c1") is False
    assert guard.record_error("c1") is False
    assert guard.record_error("c1") is True
    cooldown = guard.is_in_cooldown("c1")
    assert cooldown.in_cooldown
    assert cooldown.wait_seconds == 60
    clock.now += 60
    assert not guard.is_in_cooldown("c1").in_cooldown


def test_clear_errors_resets_streak():
    guard, _ = _guard(error_threshold=2)
    guard.record_error("c1")
    guard.clear_errors("c1")
    assert guard.record_error("c1") is False
    assert guard.record_error("c1") is True


def test_update_limits_applies_to_next_check():
    guard, _ = _guard(message_limit=1)
    guard.can_send_message("c1")
    assert not guard.can_send_message("c1").allowed
    guard.update_limits(message_limit=5)
    assert guard.can_send_message("c1").allowed


def test_cleanup_drops_expired_state():
    guard, clock = _guard(message_window_seconds=60, error_threshold=1, error_cooldown_seconds=10)
    guard.can_send_message("c1")
    guard.record_error("c2")
    clock.now += 90_000
    assert guard.cleanup() >= 2
    assert guard.cleanup() == 0
    assert not guard.is_in_cooldown("c2").in_cooldown
