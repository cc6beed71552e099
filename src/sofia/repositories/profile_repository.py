"""About Me profile and profile history repositories."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from .base import BaseRepository
from ..database import AboutMeProfile, ProfileVariableHistory


class AboutMeRepository(BaseRepository[AboutMeProfile]):
    """Repository for the per-user About Me profile."""

    async def get_by_user(self, user_id: UUID) -> Optional[AboutMeProfile]:
        result = await self.session.execute(
            select(AboutMeProfile).where(AboutMeProfile.user_id == user_id)
        )
        return result.scalar_one_or_none()


class ProfileHistoryRepository(BaseRepository[ProfileVariableHistory]):
    """Append-only profile variable history."""

    async def list_for_user(
        self,
        user_id: UUID,
        variable_name: Optional[str] = None,
        source: Optional[str] = None,
        limit: int = 50,
    ) -> List[ProfileVariableHistory]:
        """Newest first, optionally narrowed to one variable or source."""
        query = select(ProfileVariableHistory).where(
            ProfileVariableHistory.user_id == user_id
        )
        if variable_name:
            query = query.where(ProfileVariableHistory.variable_name == variable_name)
        if source:
            query = query.where(ProfileVariableHistory.source == source)

        query = query.order_by(ProfileVariableHistory.timestamp.desc()).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())
