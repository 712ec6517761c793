"""
Car service - orchestrates the ownership-scoped repository, the detail cache and
the search index. Controllers stay thin; the repository enforces ownership.
Writes are committed before the cache is invalidated or indexing is enqueued.
Cache, index and broker outages degrade to the database path.
"""

import logging
from collections.abc import Mapping
from typing import Any

from kombu.exceptions import OperationalError

from garage.cache.redis_client import cache_delete, cache_get, cache_set, car_cache_key
from garage.config import Settings, get_settings
from garage.core.identity import Identity
from garage.db.models.car import Car
from garage.db.repositories.car_repository import CarRepository, parse_car_id
from garage.queue.tasks import index_car_task, remove_car_task
from garage.schemas.car import CarListOptions, CarPayload, CarResponse
from garage.search.elasticsearch_client import search_car_ids

logger = logging.getLogger(__name__)


def car_to_doc(car: Car) -> dict:
    """Search document for a car."""
    return {
        "id": str(car.id),
        "owner_id": str(car.owner_id),
        "title": car.title,
        "description": car.description,
        "tags": car.tags,
        "created_at": car.created_at.isoformat(),
    }


def _enqueue(task, *args) -> None:
    """Send a task to the broker; an unreachable broker only costs index freshness."""
    try:
        task.delay(*args)
    except OperationalError as e:
        logger.warning("Could not enqueue %s: %s", task.name, e)


class CarService:
    """Car use cases for one caller: CRUD, listing, search."""

    def __init__(self, car_repo: CarRepository, settings: Settings | None = None):
        self.car_repo = car_repo
        self.settings = settings or get_settings()

    @property
    def uses_search_index(self) -> bool:
        return self.settings.search_backend == "elasticsearch"

    async def create(self, identity: Identity, payload: CarPayload | Mapping[str, Any]) -> CarResponse:
        car = await self.car_repo.create(identity, payload)
        await self.car_repo.commit()
        if self.uses_search_index:
            _enqueue(index_car_task, car_to_doc(car))
        return CarResponse.model_validate(car)

    async def get(self, identity: Identity, car_id: str) -> CarResponse:
        """Owned car by id. Cached per owner."""
        key = car_cache_key(identity.user_id, parse_car_id(car_id))
        cached = await cache_get(key)
        if cached:
            return CarResponse(**cached)
        car = await self.car_repo.get(identity, car_id)
        resp = CarResponse.model_validate(car)
        await cache_set(key, resp.model_dump(mode="json"))
        return resp

    async def list_cars(self, identity: Identity, options: CarListOptions) -> list[CarResponse]:
        """Owned cars; search text goes to the index when it is enabled and reachable."""
        if options.has_search and self.uses_search_index:
            ids = await search_car_ids(str(identity.user_id), options.search_text, options.tags)
            if ids is not None:
                cars = await self.car_repo.get_many(identity, ids)
                return [CarResponse.model_validate(c) for c in cars]
            logger.warning("search index unavailable, ranking in the database")
        cars = await self.car_repo.list_owned(identity, options)
        return [CarResponse.model_validate(c) for c in cars]

    async def update(self, identity: Identity, car_id: str, payload: CarPayload | Mapping[str, Any]) -> CarResponse:
        car = await self.car_repo.update(identity, car_id, payload)
        await self.car_repo.commit()
        await cache_delete(car_cache_key(identity.user_id, car.id))
        if self.uses_search_index:
            _enqueue(index_car_task, car_to_doc(car))
        return CarResponse.model_validate(car)

    async def delete(self, identity: Identity, car_id: str) -> None:
        parsed = parse_car_id(car_id)
        await self.car_repo.delete(identity, parsed)
        await self.car_repo.commit()
        await cache_delete(car_cache_key(identity.user_id, parsed))
        if self.uses_search_index:
            _enqueue(remove_car_task, str(parsed))
