"""User request/response schemas - API contract and validation."""

import uuid
from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, EmailStr, Field

# Emails are unique case-insensitively: store and look them up lower-cased
NormalizedEmail = Annotated[EmailStr, AfterValidator(lambda v: v.strip().lower())]


class UserCreate(BaseModel):
    email: NormalizedEmail
    name: str = Field(..., min_length=2, max_length=50)
    # bcrypt accepts max 72 bytes; longer passwords would fail while hashing
    password: str = Field(..., min_length=6, max_length=72)


class LoginRequest(BaseModel):
    email: NormalizedEmail
    password: str = Field(..., min_length=6, max_length=72)


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str
    name: str
    created_at: datetime

    model_config = {"from_attributes": True}
