"""ChatShop API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map ChatShopError → structured JSON responses
    - Database and shop runtime initialized on startup via lifespan context manager
    - Shutdown stops the sweeper, drains pending audit writes, then closes clients

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Sweeper is one background task per process (sessions live in-process too)
"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from chatshop.api.error_handlers import register_error_handlers
from chatshop.api.routes import health, messages
from chatshop.config import get_settings
from chatshop.infrastructure.container import build_runtime
from chatshop.infrastructure.database import init_db
from chatshop.infrastructure.observability import setup_logging
from chatshop.services.conversation_engine import ConversationEngine

logger = logging.getLogger(__name__)


async def run_sweeper(engine: ConversationEngine, interval_seconds: float) -> None:
    """Periodic housekeeping until cancelled; one failed sweep never stops the loop."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            result = await engine.sweep()
        except Exception as e:
            logger.error(f"Sweep failed: {e}", exc_info=True)
            continue
        if result["sessions_expired"]:
            logger.info(
                f"Sweep expired {result['sessions_expired']} session(s)",
                extra={"event": "sweep"},
            )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    if settings.auto_create_schema:
        await manager.create_schema()
    runtime = build_runtime(settings, manager)
    app.state.runtime = runtime
    sweeper = asyncio.create_task(
        run_sweeper(runtime.engine, settings.sweep_interval_seconds),
    )
    logger.info("ChatShop API started")
    yield
    logger.info("ChatShop API shutting down")
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    await runtime.aclose()
    await manager.close()


app = FastAPI(title="ChatShop API", version="1.0.0", lifespan=lifespan)

app.include_router(health.router)
app.include_router(messages.router)

register_error_handlers(app)
