"""AuditEvent ORM — append-only log of orders, payments, admin and security events.

Invariants:
    - Rows are inserted, never updated or deleted
    - order_created rows carry order_id and total_idr (reporting aggregates them)
    - customer_id is stored unmasked (history lookups need it); logs mask it

Design Decisions:
    - total_idr as a real column, not a JSON key: SUM() stays portable across
      PostgreSQL and SQLite
    - Composite (event, created_at) index serves /stats windows;
      (customer_id, event) serves /history
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from chatshop.db.base import Base


class AuditEvent(Base):
    """Audit log entry — one row per recorded event."""
    __tablename__ = "audit_events"
    __table_args__ = (
        Index("ix_audit_events_event_created_at", "event", "created_at"),
        Index("ix_audit_events_customer_event", "customer_id", "event"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    event: Mapped[str] = mapped_column(String(40), nullable=False)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    order_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True,
    )
    total_idr: Mapped[int | None] = mapped_column(Integer, nullable=True)
    details: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
