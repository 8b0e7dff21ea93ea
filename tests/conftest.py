"""Pytest configuration and fixtures for FleetRef tests.

Provides common fixtures for testing.
"""

from __future__ import annotations

from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fleetref.config import reset_config
from fleetref.db.models import Base, CustomerModel
from fleetref.models import Aircraft, Customer, MappingRule, SourceTier


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Point configuration at an in-memory database for every test."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.delenv("IMPORT_CONFLICT_MODE", raising=False)
    monkeypatch.delenv("FUZZY_MIN_SCORE", raising=False)
    reset_config()
    yield
    reset_config()


@pytest_asyncio.fixture()
async def db_session() -> AsyncSession:
    """Create in-memory database for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


async def _insert_customer(session: AsyncSession, name: str, **kwargs) -> CustomerModel:
    values = {
        "display_name": name,
        "color": "#3B82F6",
        "source": SourceTier.IMPORTED.value,
        "sort_order": 1,
    }
    values.update(kwargs)
    row = CustomerModel(id=uuid4(), name=name, **values)
    session.add(row)
    await session.commit()
    return row


@pytest.fixture
def add_customer():
    """Insert and commit a customer row: ``await add_customer(session, name, **columns)``."""
    return _insert_customer


@pytest.fixture
def atlas() -> Customer:
    """Active customer used as a fuzzy match candidate."""
    return Customer(id=uuid4(), name="Atlas Air", display_name="Atlas Air", color="#EF4444")


@pytest.fixture
def customers(atlas: Customer) -> list[Customer]:
    return [
        atlas,
        Customer(id=uuid4(), name="Cargojet", display_name="Cargojet", color="#F97316"),
        Customer(
            id=uuid4(),
            name="Kalitta Air",
            display_name="Kalitta Air",
            color="#22C55E",
            is_active=False,
        ),
    ]


@pytest.fixture
def default_rules() -> list[MappingRule]:
    """Small rule table mirroring config/aircraft_type_mappings.yaml."""
    return [
        MappingRule(id=1, pattern="B777", canonical_type="B777", priority=100),
        MappingRule(id=2, pattern="B767", canonical_type="B767", priority=100),
        MappingRule(id=3, pattern="^B77?$", canonical_type="B777", priority=90),
        MappingRule(id=4, pattern="*777*", canonical_type="B777", priority=50),
        MappingRule(id=5, pattern="*767*", canonical_type="B767", priority=50),
    ]


@pytest.fixture
def existing_aircraft(atlas: Customer) -> Aircraft:
    return Aircraft(
        id=1,
        registration="N401KZ",
        guid="ac-guid-1",
        aircraft_type="747-400F",
        canonical_type="B747",
        operator_id=atlas.id,
        operator_raw="Atlas Air",
        operator_match_confidence=100,
        source=SourceTier.IMPORTED,
    )
