"""User repository with name-based lookup."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select, update

from .base import BaseRepository
from ..database import User, utcnow


class UserRepository(BaseRepository[User]):
    """Repository for User operations."""

    async def get_by_name(self, name: str) -> Optional[User]:
        """Get user by the name they authenticate with."""
        result = await self.session.execute(
            select(User).where(User.name == name)
        )
        return result.scalar_one_or_none()

    async def touch_last_visit(self, user: User) -> User:
        """Record a returning visit."""
        user.last_visit = utcnow()
        await self.session.flush()
        return user

    async def increment_total_sessions(self, user_id: UUID) -> None:
        await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(total_sessions=User.total_sessions + 1)
        )
        await self.session.flush()
