"""
Car repository - every read and write is scoped to the caller's identity.
A car owned by someone else is indistinguishable from a missing one (NotFound).
The owner is always stamped from the identity, never from the payload.
"""

import re
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError
from sqlalchemy import Select, func, or_, select

from garage.core.faults import Fault, classify
from garage.core.identity import Identity
from garage.db.base import utcnow
from garage.db.models.car import Car, CarTag
from garage.db.repositories.base_repository import BaseRepository
from garage.schemas.car import CarListOptions, CarPayload

_WORD = re.compile(r"\w+")

# Relevance weight per matched word
TITLE_WEIGHT = 2
DESCRIPTION_WEIGHT = 1
TAG_WEIGHT = 1


def _words(text: str) -> list[str]:
    return _WORD.findall(text.lower())


def parse_car_id(car_id: uuid.UUID | str) -> uuid.UUID:
    if isinstance(car_id, uuid.UUID):
        return car_id
    try:
        return uuid.UUID(str(car_id))
    except ValueError:
        raise Fault.malformed_identifier(f"Invalid id: {car_id}") from None


def validate_payload(payload: CarPayload | Mapping[str, Any]) -> CarPayload:
    if isinstance(payload, CarPayload):
        return payload
    try:
        return CarPayload.model_validate(payload)
    except ValidationError as exc:
        raise classify(exc) from exc


def relevance(car: Car, terms: list[str]) -> int:
    """Whole-word score: title hits count double."""
    title = _words(car.title)
    description = _words(car.description)
    tags = [w for tag in car.tags for w in _words(tag)]
    return sum(
        TITLE_WEIGHT * title.count(term) + DESCRIPTION_WEIGHT * description.count(term) + TAG_WEIGHT * tags.count(term)
        for term in terms
    )


class CarRepository(BaseRepository[Car]):
    """Ownership-scoped CRUD, tag filtering, sorting and search over cars."""

    def __init__(self, session):
        super().__init__(session, Car)

    def _owned(self, identity: Identity) -> Select:
        return select(Car).where(Car.owner_id == identity.user_id)

    async def _find_owned(self, identity: Identity, car_id: uuid.UUID | str) -> Car:
        parsed = parse_car_id(car_id)
        result = await self.session.execute(self._owned(identity).where(Car.id == parsed))
        car = result.scalar_one_or_none()
        if car is None:
            raise Fault.not_found("Car not found")
        return car

    async def create(self, identity: Identity, payload: CarPayload | Mapping[str, Any]) -> Car:
        data = validate_payload(payload)
        car = Car(
            owner_id=identity.user_id,
            title=data.title,
            description=data.description,
            images=data.image_urls(),
        )
        car.set_tags(data.tags)
        self.session.add(car)
        await self.session.flush()
        return car

    async def get(self, identity: Identity, car_id: uuid.UUID | str) -> Car:
        return await self._find_owned(identity, car_id)

    async def get_many(self, identity: Identity, car_ids: Iterable[uuid.UUID | str]) -> list[Car]:
        """Owned cars among car_ids, in the given order. Foreign or unknown ids are skipped."""
        ids = [parse_car_id(i) for i in car_ids]
        if not ids:
            return []
        result = await self.session.execute(self._owned(identity).where(Car.id.in_(ids)))
        by_id = {car.id: car for car in result.scalars().all()}
        return [by_id[i] for i in ids if i in by_id]

    async def list_owned(self, identity: Identity, options: CarListOptions | None = None) -> list[Car]:
        """Owned cars filtered by all tags; ranked when searching, else sorted."""
        options = options or CarListOptions()
        stmt = self._owned(identity)

        if options.tags:
            wanted = sorted(set(options.tags))
            having_all = (
                select(CarTag.car_id)
                .where(CarTag.tag.in_(wanted))
                .group_by(CarTag.car_id)
                .having(func.count(func.distinct(CarTag.tag)) == len(wanted))
            )
            stmt = stmt.where(Car.id.in_(having_all))

        if options.has_search:
            return await self._search(stmt, options.search_text)

        column = getattr(Car, options.sort_field or "created_at")
        ordering = column.asc() if options.sort_order == "asc" else column.desc()
        result = await self.session.execute(stmt.order_by(ordering, Car.id))
        return list(result.scalars().all())

    async def _search(self, stmt: Select, search_text: str) -> list[Car]:
        terms = list(dict.fromkeys(_words(search_text)))
        if not terms:
            return []
        matches_any = or_(
            *(
                or_(
                    func.lower(Car.title).contains(term, autoescape=True),
                    func.lower(Car.description).contains(term, autoescape=True),
                    Car.tag_links.any(func.lower(CarTag.tag).contains(term, autoescape=True)),
                )
                for term in terms
            )
        )
        result = await self.session.execute(stmt.where(matches_any).order_by(Car.created_at.desc(), Car.id))
        scored = [(relevance(car, terms), car) for car in result.scalars().all()]
        # Substring candidates that share no whole word score 0 and are dropped
        scored = [(score, car) for score, car in scored if score > 0]
        # Stable sort: equal scores keep newest-first order
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [car for _, car in scored]

    async def update(self, identity: Identity, car_id: uuid.UUID | str, payload: CarPayload | Mapping[str, Any]) -> Car:
        """Full replace of the editable fields. Validation runs before the lookup."""
        data = validate_payload(payload)
        car = await self._find_owned(identity, car_id)
        car.title = data.title
        car.description = data.description
        car.images = data.image_urls()
        car.set_tags(data.tags)
        car.updated_at = utcnow()
        await self.session.flush()
        return car

    async def delete(self, identity: Identity, car_id: uuid.UUID | str) -> None:
        car = await self._find_owned(identity, car_id)
        await self.remove(car)
