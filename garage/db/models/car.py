"""
Car model - the owner-scoped resource. Tags live in their own table so that
"has all of these tags" is a plain SQL query on every backend.
"""

import uuid
from datetime import datetime

from sqlalchemy import JSON, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from garage.db.base import Base, UTCDateTime, utcnow


class CarTag(Base):
    """One tag of a car, kept in its original position."""

    __tablename__ = "car_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    car_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("cars.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    tag: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<CarTag(car_id={self.car_id}, tag={self.tag})>"


class Car(Base):
    """Car entity. owner_id is stamped from the caller's identity and never changes."""

    __tablename__ = "cars"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False
    )

    tag_links: Mapped[list[CarTag]] = relationship(
        CarTag,
        order_by=CarTag.position,
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def tags(self) -> list[str]:
        return [link.tag for link in self.tag_links]

    def set_tags(self, tags: list[str]) -> None:
        self.tag_links = [CarTag(tag=tag, position=i) for i, tag in enumerate(tags)]

    def __repr__(self) -> str:
        return f"<Car(id={self.id}, title={self.title})>"
