"""
Pytest fixtures - in-memory DB, HTTP client, users and tokens.
Environment is set before the app is imported: settings are read once.
"""

import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["ENVIRONMENT"] = "development"
os.environ["CACHE_ENABLED"] = "false"
os.environ["SEARCH_BACKEND"] = "database"

from typing import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from garage.core.identity import Identity
from garage.core.security import get_token_service, hash_password
from garage.db.base import Base
from garage.db.models import User
from garage.db.session import get_db
from garage.main import app

# One private in-memory database per test
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as s:
        yield s


@pytest_asyncio.fixture
async def client(session: AsyncSession):
    async def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


async def _make_user(session: AsyncSession, email: str, name: str) -> User:
    user = User(email=email, hashed_password=hash_password("password123"), name=name)
    session.add(user)
    await session.flush()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(session: AsyncSession) -> User:
    return await _make_user(session, "test@example.com", "Test User")


@pytest_asyncio.fixture
async def other_user(session: AsyncSession) -> User:
    return await _make_user(session, "other@example.com", "Other User")


def bearer(user: User) -> dict:
    return {"Authorization": f"Bearer {get_token_service().issue(user.id)}"}


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    return bearer(test_user)


@pytest.fixture
def other_headers(other_user: User) -> dict:
    return bearer(other_user)


@pytest.fixture
def identity(test_user: User) -> Identity:
    return Identity(user_id=test_user.id, email=test_user.email, name=test_user.name)


@pytest.fixture
def other_identity(other_user: User) -> Identity:
    return Identity(user_id=other_user.id, email=other_user.email, name=other_user.name)


@pytest.fixture
def car_payload() -> Callable[..., dict]:
    """Valid car body; keyword overrides replace fields."""

    def make(**overrides) -> dict:
        payload = {
            "title": "Tesla Model S",
            "description": "Luxury electric sedan with amazing performance",
            "tags": ["electric", "luxury", "sedan"],
            "images": ["https://example.com/tesla-1.jpg", "https://example.com/tesla-2.jpg"],
        }
        payload.update(overrides)
        return payload

    return make
