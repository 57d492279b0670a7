"""
Pytest configuration and shared fixtures for order processing tests.

Environment is pinned before any application module is imported so the
module-level engine and API key pick up test values.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("INTERNAL_API_KEY", "test-internal-key")

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shared.config.database import Base
from services.order_service import models as order_models  # noqa: F401
from services.inventory_service import models as inventory_models  # noqa: F401
from services.payment_service import models as payment_models  # noqa: F401
from services.order_service.idempotency import InMemoryIdempotencyCache
from services.order_service.service import OrderProcessor

from tests.fakes import FakeInventory, FakeOrderRepository, FakePayments


@pytest.fixture
def inventory():
    return FakeInventory()


@pytest.fixture
def payments():
    return FakePayments()


@pytest.fixture
def orders():
    return FakeOrderRepository()


@pytest.fixture
def cache():
    return InMemoryIdempotencyCache()


@pytest.fixture
def processor(inventory, payments, cache, orders):
    return OrderProcessor(
        inventory=inventory,
        payments=payments,
        cache=cache,
        orders=orders,
        inventory_timeout=0.2,
        payment_timeout=0.2,
    )


# ============================================
# SQLITE-BACKED FIXTURES
# ============================================


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()
