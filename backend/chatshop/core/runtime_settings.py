"""Runtime Settings — admin-editable shop settings with typed coercion.

Invariants:
    - Only keys in SETTING_TYPES exist; unknown keys are rejected, never created
    - Values are coerced to the declared type before being stored
    - Integer settings are non-negative; rate and limits are strictly positive

Design Decisions:
    - Separate from config.Settings: env config is immutable per process, these
      change at runtime via /settings and are seeded from config at startup
"""

from dataclasses import dataclass
from typing import Any

from chatshop.core.errors import CommandValidationError
from chatshop.core.result import Err, Ok, Result

SETTING_TYPES: dict[str, type] = {
    "shop_name": str,
    "usd_to_idr_rate": int,
    "message_limit": int,
    "order_limit_per_day": int,
    "session_timeout_minutes": int,
    "low_stock_threshold": int,
    "maintenance_mode": bool,
    "maintenance_message": str,
    "ai_enabled": bool,
}

# Zero would disable the shop rather than configure it
POSITIVE_KEYS = frozenset({
    "usd_to_idr_rate", "message_limit", "order_limit_per_day",
    "session_timeout_minutes",
})

_TRUE_WORDS = frozenset({"true", "1", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "0", "no", "off"})


@dataclass(frozen=True)
class SettingChange:
    key: str
    old_value: Any
    new_value: Any


class RuntimeSettings:
    """Typed key/value settings. Pure in-memory state, no IO."""

    def __init__(self, initial: dict[str, Any]):
        unknown = set(initial) - set(SETTING_TYPES)
        if unknown:
            raise ValueError(f"Unknown runtime settings: {sorted(unknown)}")
        self._values = dict(initial)

    def get(self, key: str) -> Any:
        return self._values[key]

    def snapshot(self) -> dict[str, Any]:
        return dict(self._values)

    def update(self, key: str, raw_value: str) -> Result[SettingChange]:
        expected = SETTING_TYPES.get(key)
        if expected is None:
            return Err(CommandValidationError(
                f"Unknown setting '{key}'. Use /settings help to list keys.",
                command="/settings",
            ))
        coerced = coerce_value(key, expected, raw_value)
        match coerced:
            case Err():
                return coerced
            case Ok(value=value):
                old = self._values.get(key)
                self._values[key] = value
                return Ok(SettingChange(key, old, value))


def coerce_value(key: str, expected: type, raw_value: str) -> Result[Any]:
    raw = raw_value.strip()
    if expected is bool:
        lowered = raw.lower()
        if lowered in _TRUE_WORDS:
            return Ok(True)
        if lowered in _FALSE_WORDS:
            return Ok(False)
        return Err(CommandValidationError(
            f"'{key}' expects true or false.", command="/settings",
        ))
    if expected is int:
        if not raw.isdigit():
            return Err(CommandValidationError(
                f"'{key}' expects a whole number.", command="/settings",
            ))
        value = int(raw)
        if key in POSITIVE_KEYS and value == 0:
            return Err(CommandValidationError(
                f"'{key}' must be greater than zero.", command="/settings",
            ))
        return Ok(value)
    if not raw:
        return Err(CommandValidationError(
            f"'{key}' cannot be empty.", command="/settings",
        ))
    return Ok(raw)
