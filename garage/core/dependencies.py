"""
FastAPI dependencies - identity resolution for protected routes.
Pipeline: extract credential -> verify token -> load user. Each stage either
returns a value or raises a Fault; the first fault short-circuits the request.
Every failure looks the same to the caller; the reason is only logged.
"""

import logging
import uuid
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from garage.config import get_settings
from garage.core.credentials import CredentialExtractor
from garage.core.faults import Fault
from garage.core.identity import Identity
from garage.core.security import TokenError, TokenService, get_token_service
from garage.db.repositories.user_repository import UserRepository
from garage.db.session import DbSession

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Turns a request into an Identity or an Unauthenticated fault."""

    def __init__(self, extractor: CredentialExtractor, tokens: TokenService):
        self.extractor = extractor
        self.tokens = tokens

    async def resolve(self, request: Request, session: AsyncSession) -> Identity:
        token = self.extractor.extract(request)
        if token is None:
            logger.info("auth: no credential on %s %s", request.method, request.url.path)
            raise Fault.unauthenticated()

        try:
            claims = self.tokens.verify(token)
        except TokenError as exc:
            logger.info("auth: token rejected (%s): %s", type(exc).__name__, exc)
            raise Fault.unauthenticated() from None

        try:
            user_id = uuid.UUID(claims.subject)
        except ValueError:
            logger.info("auth: token subject is not a user id: %r", claims.subject)
            raise Fault.unauthenticated() from None

        user = await UserRepository(session).get_by_id(user_id)
        if user is None:
            logger.info("auth: token subject %s has no user", user_id)
            raise Fault.unauthenticated()

        return Identity(user_id=user.id, email=user.email, name=user.name, token=token)


@lru_cache
def get_identity_resolver() -> IdentityResolver:
    return IdentityResolver(CredentialExtractor(get_settings().cookie_name), get_token_service())


Resolver = Annotated[IdentityResolver, Depends(get_identity_resolver)]


async def get_current_identity(request: Request, session: DbSession, resolver: Resolver) -> Identity:
    """Resolve the caller. Raises Unauthenticated if missing or invalid."""
    return await resolver.resolve(request, session)


# Optional auth: for routes that behave the same with or without a session (logout)
async def get_optional_identity(request: Request, session: DbSession, resolver: Resolver) -> Identity | None:
    """Return the identity if the request carries a valid session, else None."""
    try:
        return await resolver.resolve(request, session)
    except Fault:
        return None


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
OptionalIdentity = Annotated[Identity | None, Depends(get_optional_identity)]
