"""
Security: password hashing and identity tokens (JWT).
Tokens are stateless: valid until their signature or expiry check fails.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from garage.config import get_settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenError(Exception):
    """Base for token verification failures. Never shown to callers verbatim."""


class TokenMalformed(TokenError):
    """Structure, claims or signature are invalid."""


class TokenExpired(TokenError):
    """Token is past its expiry."""


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    issued_at: datetime
    expires_at: datetime


def hash_password(password: str) -> str:
    """One-way hash for storage. Never store plain passwords."""
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    """Constant-time comparison for login."""
    return pwd_context.verify(plain, hashed)


class TokenService:
    """Issues and verifies signed, time-bound identity tokens."""

    def __init__(self, secret: str, *, algorithm: str = "HS256", expire_minutes: int = 7 * 24 * 60):
        if not secret:
            raise ValueError("token secret must not be empty")
        self.secret = secret
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def issue(self, user_id: str | uuid.UUID, expires_delta: timedelta | None = None) -> str:
        """Create a token whose subject is the user id."""
        issued_at = datetime.now(timezone.utc)
        expires_at = issued_at + (expires_delta if expires_delta is not None else timedelta(minutes=self.expire_minutes))
        to_encode = {
            "sub": str(user_id),
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return jwt.encode(to_encode, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Check expiry, then signature. Raises TokenExpired or TokenMalformed."""
        try:
            unverified = jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise TokenMalformed("token is not a decodable JWT") from exc

        exp = unverified.get("exp")
        if not isinstance(exp, (int, float)):
            raise TokenMalformed("token has no numeric exp claim")
        # Expiry wins over signature problems
        if datetime.now(timezone.utc).timestamp() >= exp:
            raise TokenExpired("token expired")

        try:
            payload: dict[str, Any] = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as exc:
            raise TokenExpired("token expired") from exc
        except JWTError as exc:
            raise TokenMalformed(str(exc)) from exc

        subject = payload.get("sub")
        iat = payload.get("iat")
        if not subject or not isinstance(subject, str) or not isinstance(iat, (int, float)):
            raise TokenMalformed("token is missing sub or iat")
        return TokenClaims(
            subject=subject,
            issued_at=datetime.fromtimestamp(iat, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )


@lru_cache
def get_token_service() -> TokenService:
    """Process-wide token service built from settings."""
    settings = get_settings()
    return TokenService(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expire_minutes=settings.jwt_expire_minutes,
    )
