"""Result — tagged success/failure values returned by core operations.

Invariants:
    - Ok carries the value; Err carries a ChatShopError, never a bare string
    - Callers consume with `match` (Ok(value) / Err(error)), never isinstance chains

Design Decisions:
    - Frozen dataclasses: match-able via generated __match_args__, hashable, no setters
    - Errors stay exceptions so the shell can still `raise err.error` when it wants to
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from chatshop.core.errors import ChatShopError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: ChatShopError

    @property
    def message(self) -> str:
        return self.error.message


Result = Union[Ok[T], Err]
