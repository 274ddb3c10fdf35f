import os

# Тесты не должны трогать Postgres из окружения
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from barbershop import models
from barbershop.database import Base, get_db
from barbershop.main import app, get_registry
from barbershop.store import AppointmentStore, StoreUnavailable
from barbershop.wizard import WizardRegistry

# In-memory SQLite, одно соединение на весь тест
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FailingStore(AppointmentStore):
    """Хранилище, которое всегда недоступно."""

    def __init__(self):
        super().__init__(session=None)
        self.calls = 0

    async def list_by_professional_and_date(self, professional_id, day):
        self.calls += 1
        raise StoreUnavailable("connection refused")

    async def exists_by_professional_date_slot(self, professional_id, day, time_slot):
        self.calls += 1
        raise StoreUnavailable("connection refused")

    async def insert_appointment(self, record):
        self.calls += 1
        raise StoreUnavailable("connection refused")


@pytest.fixture
async def test_engine():
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def store(session_factory):
    async with session_factory() as session:
        yield AppointmentStore(session)


@pytest.fixture
def failing_store():
    return FailingStore()


@pytest.fixture
def count_appointments(session_factory):
    async def _count():
        async with session_factory() as session:
            result = await session.execute(select(func.count()).select_from(models.Appointment))
            return result.scalar_one()

    return _count


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    wizards = WizardRegistry()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_registry] = lambda: wizards
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
