"""Root conftest — shared fixtures: fake clock, fake gateway, real SQLite audit DB.

Invariants:
    - Every test gets a fresh SQLite database file (tmp_path), schema created
    - Time-dependent components (guard, sessions, cache) share one FakeClock
    - Tests never reach the network: the gateway and invoice creator are fakes

Design Decisions:
    - SQLite file over :memory: — concurrent audit writes open separate
      connections, which would each see an empty :memory: database
    - Mock at the external boundary (gateway), real everything else
"""

import os
from decimal import Decimal

import pytest

# Ensure tests don't accidentally use real API keys
os.environ.setdefault("ANTHROPIC_API_KEY", "sk-ant-test-fake-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")

from chatshop.core.abuse_guard import AbuseGuard, GuardLimits  # noqa: E402
from chatshop.core.domain_types import PaymentStatus, ProductId  # noqa: E402
from chatshop.core.errors import ExternalServiceError  # noqa: E402
from chatshop.core.order_pricing import OrderIdAllocator  # noqa: E402
from chatshop.core.product import Product  # noqa: E402
from chatshop.core.runtime_settings import RuntimeSettings  # noqa: E402
from chatshop.core.ttl_cache import TTLCache  # noqa: E402
from chatshop.infrastructure.admin_allowlist import StaticAdminAllowlist  # noqa: E402
from chatshop.infrastructure.audit_repository import SqlAuditSink  # noqa: E402
from chatshop.infrastructure.database import DatabaseSessionManager  # noqa: E402
from chatshop.infrastructure.delivery_vault import InMemoryDeliveryVault  # noqa: E402
from chatshop.infrastructure.memory_catalog import InMemoryProductCatalog  # noqa: E402
from chatshop.infrastructure.memory_session_store import InMemorySessionStore  # noqa: E402
from chatshop.services.audit_trail import AuditTrail  # noqa: E402
from chatshop.services.cached_reads import CachedCatalog, CachedSettings  # noqa: E402
from chatshop.services.conversation_engine import ConversationEngine  # noqa: E402
from chatshop.services.shop_context import PaymentAccount, ShopContext  # noqa: E402

ADMIN = "628000000001"
CUSTOMER = "628123456789"
OTHER_CUSTOMER = "628555500002"


class FakeClock:
    """Callable clock the tests advance by hand."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGateway:
    """PaymentGateway + InvoiceCreator double with scripted statuses."""

    def __init__(self):
        self.statuses: dict[str, PaymentStatus] = {}
        self.default_status = PaymentStatus.SUCCEEDED
        self.fail_checks = False
        self.fail_invoices = False
        self.check_calls: list[str] = []
        self.invoices: list[tuple[str, int]] = []

    async def check_status(self, invoice_id: str) -> PaymentStatus:
        self.check_calls.append(invoice_id)
        if self.fail_checks:
            raise ExternalServiceError("payment_gateway", "request timed out")
        return self.statuses.get(invoice_id, self.default_status)

    async def create_qris_invoice(self, order_id: str, amount_idr: int) -> str:
        if self.fail_invoices:
            raise ExternalServiceError("payment_gateway", "HTTP 503")
        self.invoices.append((order_id, amount_idr))
        return f"inv-{len(self.invoices)}"


def make_products() -> list[Product]:
    return [
        Product(ProductId("netflix"), "Netflix Premium", Decimal("5.00"), stock=10,
                category="premium", description="4K UHD"),
        Product(ProductId("spotify"), "Spotify Premium", Decimal("2.00"), stock=10,
                category="premium", description="Ad-free music"),
        Product(ProductId("youtube"), "YouTube Premium", Decimal("1.00"), stock=0,
                category="premium"),
    ]


def default_runtime_settings() -> dict:
    return {
        "shop_name": "Test Shop",
        "usd_to_idr_rate": 15_800,
        "message_limit": 20,
        "order_limit_per_day": 5,
        "session_timeout_minutes": 30,
        "low_stock_threshold": 5,
        "maintenance_mode": False,
        "maintenance_message": "Back soon.",
        "ai_enabled": False,
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
async def db_manager(tmp_path):
    manager = DatabaseSessionManager(f"sqlite+aiosqlite:///{tmp_path / 'audit.db'}")
    await manager.create_schema()
    yield manager
    await manager.close()


@pytest.fixture
def vault():
    return InMemoryDeliveryVault({
        "netflix": [f"netflix{i}@mail.com:pass{i}" for i in range(5)],
        "spotify": [f"SPOT-{i}" for i in range(5)],
    })


@pytest.fixture
def inner_catalog():
    return InMemoryProductCatalog(make_products())


@pytest.fixture
def ctx(clock, gateway, db_manager, vault, inner_catalog):
    cache = TTLCache(clock=clock)
    return ShopContext(
        sessions=InMemorySessionStore(clock=clock),
        catalog=CachedCatalog(inner_catalog, cache, 300),
        settings=CachedSettings(RuntimeSettings(default_runtime_settings()), cache, 600),
        guard=AbuseGuard(GuardLimits(), clock=clock),
        audit=AuditTrail(SqlAuditSink(db_manager)),
        gateway=gateway,
        invoices=gateway,
        vault=vault,
        allowlist=StaticAdminAllowlist([ADMIN]),
        cache=cache,
        order_ids=OrderIdAllocator(clock_ms=lambda: 1_700_000_000_000),
        payment_accounts={
            "dana": PaymentAccount("081200001111", "Test Shop"),
            "bca": PaymentAccount("1234567890", "Test Shop"),
        },
        support_contact="support@test.shop",
    )


@pytest.fixture
def engine(ctx):
    return ConversationEngine(ctx)
