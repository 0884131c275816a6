"""Audit Record — immutable event appended to the audit sink.

Invariants:
    - Records are never updated or deleted once appended
    - order_created and products_delivered records carry order_id and total_idr
      (history and reporting read them)
    - metadata holds only JSON-serializable values
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from chatshop.core.domain_types import AuditEventType


@dataclass(frozen=True)
class AuditRecord:
    event: AuditEventType
    customer_id: str
    metadata: dict[str, Any] = field(default_factory=dict)
    order_id: str | None = None
    total_idr: int | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class OrderTotals:
    """Orders created and delivered in a time window; revenue sums deliveries only."""
    created_count: int
    delivered_count: int
    revenue_idr: int
