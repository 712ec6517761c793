"""
Request transactions - writes are durable before the response or any side effect.
"""

from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from kombu.exceptions import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from garage.config import get_settings
from garage.db.base import Base
from garage.db.repositories.car_repository import CarRepository
from garage.db.repositories.user_repository import UserRepository
from garage.db.session import Database
from garage.main import app
from garage.services import car_service
from garage.services.car_service import CarService


@pytest.fixture
def events() -> list[str]:
    return []


@pytest.fixture
def record_commits(monkeypatch, events: list[str]):
    real_commit = AsyncSession.commit

    async def commit(self):
        events.append("commit")
        await real_commit(self)

    monkeypatch.setattr(AsyncSession, "commit", commit)


@pytest_asyncio.fixture
async def database(tmp_path):
    """A real Database on a file, used through the real get_db dependency."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'garage.db'}")
    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    app.state.db = db
    yield db
    del app.state.db
    await db.dispose()


@pytest.mark.asyncio
async def test_register_commits_before_response_starts(database: Database, record_commits, events: list[str]):
    async def recording_app(scope, receive, send):
        async def recording_send(message):
            if message["type"] == "http.response.start":
                events.append(f"response.start {message['status']}")
            await send(message)

        await app(scope, receive, recording_send)

    async with AsyncClient(transport=ASGITransport(app=recording_app), base_url="http://test") as client:
        response = await client.post(
            "/api/auth/register",
            json={"email": "durable@example.com", "password": "secret123", "name": "Durable"},
        )

    assert response.status_code == 201
    assert "commit" in events
    assert events.index("commit") < events.index("response.start 201")

    async with database.session_maker() as fresh:
        assert await UserRepository(fresh).get_by_email("durable@example.com") is not None


@pytest.fixture
def indexed_service(session: AsyncSession) -> CarService:
    settings = get_settings().model_copy(update={"search_backend": "elasticsearch"})
    return CarService(CarRepository(session), settings)


@pytest.mark.asyncio
async def test_update_commits_before_cache_and_index(
    indexed_service: CarService, identity, car_payload, monkeypatch, record_commits, events: list[str]
):
    async def cache_delete(key):
        events.append("cache_delete")

    monkeypatch.setattr(car_service, "cache_delete", cache_delete)
    monkeypatch.setattr(
        car_service,
        "index_car_task",
        SimpleNamespace(name="index_car", delay=lambda doc: events.append("index")),
    )

    car = await indexed_service.create(identity, car_payload())
    events.clear()
    await indexed_service.update(identity, str(car.id), car_payload(title="Tesla Model 3"))
    assert events == ["commit", "cache_delete", "index"]


@pytest.mark.asyncio
async def test_delete_commits_before_cache_and_index(
    indexed_service: CarService, identity, car_payload, monkeypatch, record_commits, events: list[str]
):
    async def cache_delete(key):
        events.append("cache_delete")

    monkeypatch.setattr(car_service, "cache_delete", cache_delete)
    monkeypatch.setattr(car_service, "index_car_task", SimpleNamespace(name="index_car", delay=lambda doc: None))
    monkeypatch.setattr(
        car_service,
        "remove_car_task",
        SimpleNamespace(name="remove_car", delay=lambda car_id: events.append("remove")),
    )

    car = await indexed_service.create(identity, car_payload())
    events.clear()
    await indexed_service.delete(identity, str(car.id))
    assert events == ["commit", "cache_delete", "remove"]


@pytest.mark.asyncio
async def test_broker_outage_does_not_fail_writes(indexed_service: CarService, identity, car_payload, monkeypatch):
    def broker_down(*args):
        raise OperationalError("[Errno 111] Connection refused")

    async def cache_delete(key):
        return None

    monkeypatch.setattr(car_service, "cache_delete", cache_delete)
    for name in ("index_car_task", "remove_car_task"):
        monkeypatch.setattr(car_service, name, SimpleNamespace(name=name, delay=broker_down))

    created = await indexed_service.create(identity, car_payload())
    assert created.title == "Tesla Model S"
    updated = await indexed_service.update(identity, str(created.id), car_payload(title="Tesla Model 3"))
    assert updated.title == "Tesla Model 3"
    await indexed_service.delete(identity, str(created.id))
    assert await indexed_service.car_repo.list_owned(identity) == []
