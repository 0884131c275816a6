"""API test fixtures — httpx client against the app without running lifespan.

Design Decisions:
    - ASGITransport skips lifespan: the engine comes from the shared `engine`
      fixture via dependency_overrides, the database manager is swapped in
      the module the health route reads at call time
"""

import pytest
from httpx import ASGITransport, AsyncClient

import chatshop.infrastructure.database as db_module
from chatshop.api.routes.messages import get_engine
from chatshop.main import app


@pytest.fixture
async def client(engine, db_manager):
    original_manager = db_module.db_manager
    app.dependency_overrides[get_engine] = lambda: engine
    db_module.db_manager = db_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
