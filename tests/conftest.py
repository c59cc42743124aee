"""Pytest configuration and fixtures."""
import os

# must be set before eventreg modules read their configuration
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_URL"] = ""
os.environ["ADMIN_KEY"] = "test-admin-key"
os.environ["AUTO_CREATE_TABLES"] = "0"

import httpx
import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from eventreg.db import get_session
from eventreg.main import app
from eventreg.models import UserRole
from factories import Catalog


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)

    # let SQLAlchemy emit BEGIN itself so SAVEPOINTs work under aiosqlite
    @event.listens_for(eng.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(eng.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    from eventreg.models import Base

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def catalog(session_factory):
    return Catalog(session_factory)


@pytest.fixture
def drift(monkeypatch):
    """Capture drift entries instead of pushing them to redis."""
    from eventreg.services import inventory

    recorded = []

    async def record(ticket_id, quantity, registration_id):
        recorded.append((ticket_id, quantity, registration_id))

    monkeypatch.setattr(inventory, "record_inventory_drift", record)
    return recorded


@pytest.fixture
async def organizer(catalog):
    return await catalog.user("olivia@example.com", role=UserRole.ORGANIZER)


@pytest.fixture
async def paid_event(catalog, organizer):
    return await catalog.event(organizer, name="Tech Conference", is_free=False, capacity=100)


@pytest.fixture
async def free_event(catalog, organizer):
    return await catalog.event(organizer, name="Community Meetup", is_free=True, capacity=100)


@pytest.fixture
async def client(session_factory):
    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
