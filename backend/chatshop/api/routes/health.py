"""Health Probes — liveness for the process, readiness for the audit database.

Invariants:
    - GET /api/v1/health/ is 200 whenever the event loop answers
    - GET /api/v1/health/ready is 503 while the audit database is unreachable;
      the chat path keeps working then, but /stats and /history do not

Design Decisions:
    - Readiness also reports the audit write backlog: a growing number means the
      database accepts pings but not inserts fast enough
"""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from chatshop.infrastructure import database

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])

SERVICE = "chatshop-api"
VERSION = "1.0.0"


@router.get("/", status_code=status.HTTP_200_OK)
async def liveness():
    return {"status": "alive", "service": SERVICE, "version": VERSION}


@router.get("/ready")
async def readiness(request: Request):
    manager = database.db_manager
    latency_ms = await manager.ping() if manager else None
    if latency_ms is None:
        logger.warning("Readiness failed: audit database unreachable")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "database_unavailable"},
        )
    runtime = getattr(request.app.state, "runtime", None)
    return {
        "status": "ready",
        "database_latency_ms": round(latency_ms, 1),
        "pending_audit_writes": runtime.ctx.audit.pending if runtime else 0,
    }
