"""
Auth service - registration and login. Issues the identity token for a user.
"""

import logging

from sqlalchemy.exc import IntegrityError

from garage.core.faults import Fault
from garage.core.security import TokenService, hash_password, verify_password
from garage.db.models.user import User
from garage.db.repositories.user_repository import UserRepository
from garage.schemas.user import LoginRequest, UserCreate

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, user_repo: UserRepository, tokens: TokenService):
        self.user_repo = user_repo
        self.tokens = tokens

    async def register(self, data: UserCreate) -> tuple[User, str]:
        """Create the account and sign its first token. Duplicate email -> DuplicateKey."""
        if await self.user_repo.get_by_email(data.email):
            raise Fault.duplicate_key("Email already exists")
        user = User(
            email=data.email,
            hashed_password=hash_password(data.password),
            name=data.name,
        )
        try:
            user = await self.user_repo.add(user)
        except IntegrityError:
            # Lost a race with a concurrent registration of the same email
            raise Fault.duplicate_key("Email already exists") from None
        logger.info("registered user %s", user.id)
        return user, self.tokens.issue(user.id)

    async def login(self, data: LoginRequest) -> tuple[User, str]:
        """Same failure for unknown email and wrong password."""
        user = await self.user_repo.get_by_email(data.email)
        if user is None or not verify_password(data.password, user.hashed_password):
            raise Fault.unauthenticated("Invalid credentials")
        return user, self.tokens.issue(user.id)
