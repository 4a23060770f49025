"""
Centralized Test Configuration.
"""

import pytest
from datetime import datetime, timezone
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from rental_backend.app.main import app
from rental_backend.app.core.clock import FixedClock
from rental_backend.app.core.dependencies import get_clock
from rental_backend.app.core.sessions import InMemorySessionStore, get_session_store
from rental_backend.app.db.repository import CollectionRepository, get_repository
from rental_backend.app.db.session import Base
from rental_backend.app.models.stored_record import StoredRecord  # noqa: F401
from rental_backend.app.services.car_service import CarService
from rental_backend.app.services.customer_service import CustomerService
from rental_backend.app.services.notification_service import LoggingChannel, get_notifier
from rental_backend.app.services.reservation_lifecycle import ReservationLifecycleManager

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# 2024-05-15 16:00 in Baku
NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)

TZ = "Asia/Baku"


class RecordingNotifier:
    """Notifier double: keeps events instead of sending them."""

    def __init__(self):
        self.events = []
        self.fail = False
        self.channel = LoggingChannel()

    def notify(self, event, fields):
        if self.fail:
            raise RuntimeError("notifier down")
        self.events.append((event, dict(fields)))


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self.expiry = {}
        self._closed = False

    async def ping(self):
        if self._closed:
            return False
        return True

    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        self.expiry[key] = ex
        return True

    async def delete(self, key):
        if self._closed:
            return 0
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def exists(self, key):
        if self._closed:
            return 0
        return 1 if key in self.store else 0

    async def flushdb(self):
        if not self._closed:
            self.store = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def repository(session_factory):
    return CollectionRepository(session_factory)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def sessions():
    return InMemorySessionStore(ttl_seconds=3600)


@pytest.fixture
def mock_redis():
    return MockRedis()


@pytest.fixture
def manager(repository, clock, notifier):
    return ReservationLifecycleManager(repository, clock, notifier, timezone=TZ)


@pytest.fixture
async def car(repository, clock):
    return await CarService.create_car(repository, clock, {
        "brand": "Toyota", "model": "Corolla", "plate": "10-AB-123", "base_price_per_day": 100
    })


@pytest.fixture
async def other_car(repository, clock):
    return await CarService.create_car(repository, clock, {
        "brand": "Kia", "model": "Rio", "plate": "77-ZZ-789", "base_price_per_day": 80
    })


@pytest.fixture
async def customer(repository, clock):
    return await CustomerService.create_customer(repository, clock, {
        "first_name": "Aysel", "last_name": "Mammadova", "phone": "+994501112233"
    })


@pytest.fixture
async def client(repository, clock, notifier, sessions):
    """Async client for testing, wired to the per-test collaborators."""
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_session_store] = lambda: sessions

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}
