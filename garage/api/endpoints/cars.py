"""
Car CRUD endpoints - RESTful resource, always scoped to the caller.
Thin controllers; CarService and CarRepository hold the logic.
"""

from fastapi import APIRouter, Query, status

from garage.core.dependencies import CurrentIdentity
from garage.db.repositories.car_repository import CarRepository
from garage.db.session import DbSession
from garage.schemas.car import CarListOptions, CarPayload, CarResponse
from garage.services.car_service import CarService

router = APIRouter()


def _get_car_service(session: DbSession) -> CarService:
    """Factory for service with repository injection."""
    return CarService(CarRepository(session))


@router.get("", response_model=list[CarResponse])
async def list_cars(
    session: DbSession,
    identity: CurrentIdentity,
    sort: str | None = Query(None, description="created_at, updated_at or title"),
    order: str | None = Query(None, description="asc or desc"),
    tags: str | None = Query(None, description="comma-separated; cars must have all of them"),
):
    """The caller's cars, newest first unless another sort is requested."""
    options = CarListOptions.from_query(tags=tags, sort=sort, order=order)
    return await _get_car_service(session).list_cars(identity, options)


@router.get("/search", response_model=list[CarResponse])
async def search_cars(
    session: DbSession,
    identity: CurrentIdentity,
    q: str | None = Query(None, description="full-text query; empty lists everything"),
    tags: str | None = Query(None, description="comma-separated; cars must have all of them"),
):
    """Full-text search over title, description and tags, best match first."""
    options = CarListOptions.from_query(q=q, tags=tags)
    return await _get_car_service(session).list_cars(identity, options)


@router.post("", response_model=CarResponse, status_code=status.HTTP_201_CREATED)
async def create_car(session: DbSession, data: CarPayload, identity: CurrentIdentity):
    """Create a car owned by the caller."""
    return await _get_car_service(session).create(identity, data)


@router.get("/{car_id}", response_model=CarResponse)
async def get_car(session: DbSession, car_id: str, identity: CurrentIdentity):
    return await _get_car_service(session).get(identity, car_id)


@router.api_route("/{car_id}", methods=["PUT", "PATCH"], response_model=CarResponse)
async def update_car(session: DbSession, car_id: str, data: CarPayload, identity: CurrentIdentity):
    """Replace title, description, tags and images."""
    return await _get_car_service(session).update(identity, car_id, data)


@router.delete("/{car_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_car(session: DbSession, car_id: str, identity: CurrentIdentity):
    await _get_car_service(session).delete(identity, car_id)
