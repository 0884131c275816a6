"""Admin Allowlist — static set of admin chat ids from configuration.

Invariants:
    - Matching compares the number part only ("628123@c.us" == "628123")
    - Comparison is exact equality, never substring containment
"""


def _normalize(chat_id: str) -> str:
    return chat_id.strip().split("@", 1)[0].lstrip("+")


class StaticAdminAllowlist:
    def __init__(self, admin_ids: list[str]):
        self._ids = [chat_id for chat_id in admin_ids if chat_id.strip()]
        self._normalized = frozenset(_normalize(chat_id) for chat_id in self._ids)

    def is_admin(self, customer_id: str) -> bool:
        return bool(customer_id) and _normalize(customer_id) in self._normalized

    def admin_ids(self) -> list[str]:
        return list(self._ids)
