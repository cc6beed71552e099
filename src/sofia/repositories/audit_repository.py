"""Audit trail queries. Rows are written by the audit recorder only."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select

from .base import BaseRepository
from ..database import AuditLogEntry, User


class AuditRepository(BaseRepository[AuditLogEntry]):
    """Read side of the audit log."""

    async def list_for_user(
        self,
        user_id: UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """
        Audit entries for one actor joined with the actor's name.

        Bounds are inclusive; results are newest first.
        """
        query = (
            select(AuditLogEntry, User.name)
            .outerjoin(User, AuditLogEntry.user_id == User.id)
            .where(AuditLogEntry.user_id == user_id)
        )
        if start is not None:
            query = query.where(AuditLogEntry.created_at >= _naive_utc(start))
        if end is not None:
            query = query.where(AuditLogEntry.created_at <= _naive_utc(end))

        query = query.order_by(AuditLogEntry.created_at.desc()).limit(limit)
        result = await self.session.execute(query)

        return [
            {"entry": entry, "user_name": user_name}
            for entry, user_name in result.all()
        ]


def _naive_utc(value: datetime) -> datetime:
    # Stored timestamps are naive UTC
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
