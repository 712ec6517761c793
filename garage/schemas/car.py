"""Car request/response schemas - REST API contract."""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

# Public sort names -> model attribute; camelCase kept for existing clients
SORT_FIELDS = {
    "created_at": "created_at",
    "createdAt": "created_at",
    "updated_at": "updated_at",
    "updatedAt": "updated_at",
    "title": "title",
}


class CarPayload(BaseModel):
    """Body for create and full update. Unknown keys (owner, id, ...) are dropped."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    title: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=10)
    images: list[HttpUrl] = Field(..., min_length=1, max_length=10)
    tags: list[str] = Field(..., min_length=1)

    @field_validator("tags")
    @classmethod
    def tags_not_blank(cls, tags: list[str]) -> list[str]:
        cleaned: list[str] = []
        for tag in (t.strip() for t in tags):
            if not tag:
                raise ValueError("Tags must not be empty")
            if len(tag) > 100:
                raise ValueError("Tags must be at most 100 characters")
            if tag not in cleaned:
                cleaned.append(tag)
        return cleaned

    def image_urls(self) -> list[str]:
        return [str(url) for url in self.images]


class CarListOptions(BaseModel):
    search_text: str | None = None
    tags: list[str] = Field(default_factory=list)
    sort_field: str | None = None
    sort_order: Literal["asc", "desc"] = "desc"

    @field_validator("sort_field")
    @classmethod
    def known_sort_field(cls, value: str | None) -> str | None:
        if value is None or value == "":
            return None
        if value not in SORT_FIELDS:
            raise ValueError(f"Cannot sort by {value!r}; use one of {', '.join(sorted(SORT_FIELDS))}")
        return SORT_FIELDS[value]

    @field_validator("tags")
    @classmethod
    def strip_tags(cls, tags: list[str]) -> list[str]:
        return [t.strip() for t in tags if t and t.strip()]

    @classmethod
    def from_query(
        cls,
        *,
        q: str | None = None,
        tags: str | None = None,
        sort: str | None = None,
        order: str | None = None,
    ) -> "CarListOptions":
        """Build options from query-string values (tags comma-separated)."""
        return cls(
            search_text=q,
            tags=tags.split(",") if tags else [],
            sort_field=sort,
            sort_order=(order or "desc").lower(),
        )

    @property
    def has_search(self) -> bool:
        return bool(self.search_text and self.search_text.strip())


class CarResponse(BaseModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    description: str
    tags: list[str]
    images: list[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
