"""Resolved, authenticated caller for the duration of one request."""

import uuid
from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    user_id: uuid.UUID
    email: str
    name: str
    token: str | None = None
