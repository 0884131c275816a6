"""SQL Audit Sink — AuditSink implementation over the audit_events table.

Invariants:
    - append() inserts exactly one row and commits it
    - recent_orders() returns order_created records newest first
    - order_totals_since() is a single aggregate query, never a table scan in Python;
      revenue sums products_delivered rows, counts cover created and delivered
    - Window starts are compared in UTC, the zone every row is written in

Design Decisions:
    - Session per call from DatabaseSessionManager: audit writes are independent
      units, one failure never poisons another
"""

from datetime import datetime, timezone

from sqlalchemy import case, func, select

from chatshop.core.audit_record import AuditRecord, OrderTotals
from chatshop.core.domain_types import AuditEventType, CustomerId
from chatshop.infrastructure.database import DatabaseSessionManager
from chatshop.models.audit_event import AuditEvent


class SqlAuditSink:
    def __init__(self, manager: DatabaseSessionManager):
        self._manager = manager

    async def append(self, record: AuditRecord) -> None:
        async with self._manager.session() as db:
            db.add(AuditEvent(
                event=record.event.value,
                customer_id=record.customer_id,
                order_id=record.order_id,
                total_idr=record.total_idr,
                details=record.metadata or None,
                created_at=record.timestamp,
            ))
            await db.commit()

    async def recent_orders(
        self, customer_id: CustomerId, limit: int,
    ) -> list[AuditRecord]:
        stmt = (
            select(AuditEvent)
            .where(
                AuditEvent.customer_id == customer_id,
                AuditEvent.event == AuditEventType.ORDER_CREATED.value,
            )
            .order_by(AuditEvent.created_at.desc())
            .limit(limit)
        )
        async with self._manager.session() as db:
            rows = (await db.execute(stmt)).scalars().all()
        return [_to_record(row) for row in rows]

    async def order_totals_since(self, since: datetime) -> OrderTotals:
        created = AuditEvent.event == AuditEventType.ORDER_CREATED.value
        delivered = AuditEvent.event == AuditEventType.PRODUCTS_DELIVERED.value
        stmt = select(
            func.coalesce(func.sum(case((created, 1), else_=0)), 0),
            func.coalesce(func.sum(case((delivered, 1), else_=0)), 0),
            func.coalesce(
                func.sum(case((delivered, AuditEvent.total_idr), else_=0)), 0,
            ),
        ).where(
            AuditEvent.event.in_((
                AuditEventType.ORDER_CREATED.value,
                AuditEventType.PRODUCTS_DELIVERED.value,
            )),
            AuditEvent.created_at >= since.astimezone(timezone.utc),
        )
        async with self._manager.session() as db:
            created_count, delivered_count, revenue = (await db.execute(stmt)).one()
        return OrderTotals(
            created_count=int(created_count),
            delivered_count=int(delivered_count),
            revenue_idr=int(revenue),
        )


def _to_record(row: AuditEvent) -> AuditRecord:
    return AuditRecord(
        event=AuditEventType(row.event),
        customer_id=row.customer_id,
        metadata=row.details or {},
        order_id=row.order_id,
        total_idr=row.total_idr,
        timestamp=row.created_at,
    )
