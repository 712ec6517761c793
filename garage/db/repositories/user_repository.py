"""
User repository - encapsulates all user data access.
"""

from sqlalchemy import select

from garage.db.models.user import User
from garage.db.repositories.base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    """User-specific queries."""

    def __init__(self, session):
        super().__init__(session, User)

    async def get_by_email(self, email: str) -> User | None:
        """Find user by (lower-cased) email - used for registration and login."""
        result = await self.session.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()
