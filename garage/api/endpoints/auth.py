"""
Auth endpoints - registration, login, logout and the current identity.
The token is set as an HTTP-only cookie and also returned in the body for
clients that prefer the Authorization header.
"""

import logging

from fastapi import APIRouter, Response, status

from garage.config import get_settings
from garage.core.credentials import LOGGED_OUT
from garage.core.dependencies import CurrentIdentity, OptionalIdentity
from garage.core.faults import Fault
from garage.core.security import get_token_service
from garage.db.repositories.user_repository import UserRepository
from garage.db.session import DbSession
from garage.schemas.user import LoginRequest, UserCreate, UserResponse
from garage.services.auth_service import AuthService

logger = logging.getLogger(__name__)
router = APIRouter()
settings = get_settings()

LOGOUT_COOKIE_SECONDS = 10


def _get_auth_service(session: DbSession) -> AuthService:
    return AuthService(UserRepository(session), get_token_service())


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        settings.cookie_name,
        token,
        max_age=settings.jwt_expire_minutes * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def _session_body(user, token: str) -> dict:
    return {
        "status": "success",
        "token": token,
        "data": {"user": UserResponse.model_validate(user).model_dump(mode="json")},
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(session: DbSession, data: UserCreate, response: Response):
    """Create an account and start a session."""
    user, token = await _get_auth_service(session).register(data)
    _set_session_cookie(response, token)
    return _session_body(user, token)


@router.post("/login")
async def login(session: DbSession, data: LoginRequest, response: Response):
    """Authenticate with email and password."""
    user, token = await _get_auth_service(session).login(data)
    _set_session_cookie(response, token)
    return _session_body(user, token)


@router.api_route("/logout", methods=["GET", "POST"])
async def logout(response: Response, identity: OptionalIdentity):
    """End the cookie session by overwriting it with the logged-out marker."""
    response.set_cookie(
        settings.cookie_name,
        LOGGED_OUT,
        max_age=LOGOUT_COOKIE_SECONDS,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
    if identity is not None:
        logger.info("user %s logged out", identity.user_id)
    return {"status": "success"}


@router.get("/me")
async def me(session: DbSession, identity: CurrentIdentity):
    """The resolved identity of the caller."""
    user = await UserRepository(session).get_by_id(identity.user_id)
    if user is None:
        raise Fault.unauthenticated()
    return {"status": "success", "data": {"user": UserResponse.model_validate(user).model_dump(mode="json")}}
