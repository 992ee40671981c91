import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tablebooking.database import Base
from tablebooking.models import DiningTable, Role, User
from tablebooking.resolver import AvailabilityResolver
from tablebooking.stores import build_context


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier():
    """Stands in for the Redis backed notifier."""
    return AsyncMock()


@pytest.fixture
def context(session, notifier):
    return build_context(session, notifier=notifier)


@pytest.fixture
def resolver(context):
    return AvailabilityResolver(context)


@pytest.fixture
def add_user(session):
    async def _add(name="Test User", email=None, role=Role.CLIENT.value, password="x"):
        user = User(
            name=name,
            email=email or f"{name.lower().replace(' ', '.')}@example.com",
            password=password,
            role=role,
        )
        session.add(user)
        await session.commit()
        return user

    return _add


@pytest.fixture
def add_table(session):
    async def _add(table_number, capacity, available=True):
        table = DiningTable(table_number=table_number, capacity=capacity, available=available)
        session.add(table)
        await session.commit()
        return table

    return _add
