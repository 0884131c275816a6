"""Audit Trail — fire-and-forget writes to the audit sink.

Invariants:
    - record() never blocks the reply path and never raises
    - A failed write is logged (with event and masked customer) and dropped
    - drain() awaits every write scheduled so far (shutdown and tests)
    - settle(customer_id) awaits that customer's scheduled writes, so a read of
      their own history after a write sees it

Design Decisions:
    - asyncio.create_task per record, strong refs kept in a set until done
      (the event loop holds only weak references to tasks)
"""

import asyncio
import logging
from typing import Any

from chatshop.core.audit_record import AuditRecord
from chatshop.core.domain_types import AuditEventType, SecurityReason
from chatshop.core.repository_protocols import AuditSink

logger = logging.getLogger(__name__)


class AuditTrail:
    def __init__(self, sink: AuditSink):
        self.sink = sink
        self._pending: dict[asyncio.Task, str] = {}

    @property
    def pending(self) -> int:
        return len(self._pending)

    def record(
        self,
        event: AuditEventType,
        customer_id: str,
        *,
        order_id: str | None = None,
        total_idr: int | None = None,
        **metadata: Any,
    ) -> None:
        record = AuditRecord(
            event=event,
            customer_id=customer_id,
            metadata=metadata,
            order_id=order_id,
            total_idr=total_idr,
        )
        task = asyncio.create_task(self._write(record))
        self._pending[task] = customer_id
        task.add_done_callback(self._forget)

    def security(
        self, customer_id: str, reason: SecurityReason, **metadata: Any,
    ) -> None:
        logger.warning(
            f"Security event: {reason.value}",
            extra={"customer_id": customer_id, "event": reason.value},
        )
        self.record(
            AuditEventType.SECURITY, customer_id, reason=reason.value, **metadata,
        )

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def settle(self, customer_id: str) -> None:
        tasks = [t for t, owner in self._pending.items() if owner == customer_id]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _forget(self, task: asyncio.Task) -> None:
        self._pending.pop(task, None)

    async def _write(self, record: AuditRecord) -> None:
        try:
            await self.sink.append(record)
        except Exception as e:
            logger.error(
                f"Audit write failed: {e}",
                extra={
                    "customer_id": record.customer_id,
                    "event": record.event.value,
                    "order_id": record.order_id,
                },
            )
