"""Repositories for user-owned list items (goals, chapters, feedback...)."""

from typing import List
from uuid import UUID

from sqlalchemy import select

from .base import BaseRepository, ModelType
from ..database import Feedback, Goal


class OwnedItemRepository(BaseRepository[ModelType]):
    """Items that belong to exactly one user, listed newest first."""

    async def list_for_user(self, user_id: UUID, limit: int = 100) -> List[ModelType]:
        result = await self.session.execute(
            select(self.model)
            .where(self.model.user_id == user_id)
            .order_by(self.model.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


class GoalRepository(OwnedItemRepository[Goal]):

    async def list_active(self, user_id: UUID) -> List[Goal]:
        result = await self.session.execute(
            select(Goal)
            .where(Goal.user_id == user_id, Goal.status == "active")
            .order_by(Goal.created_at.desc())
        )
        return list(result.scalars().all())


class FeedbackRepository(OwnedItemRepository[Feedback]):

    async def list_unreviewed(self) -> List[Feedback]:
        """All unreviewed feedback across users, newest first."""
        result = await self.session.execute(
            select(Feedback)
            .where(Feedback.is_reviewed.is_(False))
            .order_by(Feedback.created_at.desc())
        )
        return list(result.scalars().all())
