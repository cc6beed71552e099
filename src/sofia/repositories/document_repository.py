"""Database-backed document and notification stores."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from .base import BaseRepository
from .item_repository import OwnedItemRepository
from ..core.exceptions import NotFoundError
from ..database import Document, Notification, utcnow


class DocumentRepository(BaseRepository[Document]):
    """Repository for uploaded documents."""

    async def list_for_user(self, user_id: UUID) -> List[Document]:
        result = await self.session.execute(
            select(Document)
            .where(Document.user_id == user_id)
            .order_by(Document.upload_timestamp.desc())
        )
        return list(result.scalars().all())

    async def record_applied(
        self, document_id: UUID, user_id: UUID, applied_count: int
    ) -> Optional[Document]:
        """Applied-count bookkeeping, the only mutation a document allows."""
        document = await self.get_owned(document_id, user_id)
        if not document:
            return None

        document.applied_count = applied_count
        document.processed_timestamp = utcnow()
        await self.session.flush()
        return document


class NotificationRepository(OwnedItemRepository[Notification]):
    """Per-user notification store."""

    async def create(self, user_id: UUID, document_id: UUID, message: str) -> Notification:
        return await super().create(
            user_id=user_id,
            document_id=document_id,
            message=message,
            is_delivered=False,
        )

    async def list_pending(self, user_id: UUID) -> List[Notification]:
        """Undelivered notifications, newest first."""
        result = await self.session.execute(
            select(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.is_delivered.is_(False),
            )
            .order_by(Notification.created_at.desc())
        )
        return list(result.scalars().all())

    async def mark_delivered(self, notification_id: UUID, user_id: UUID) -> Notification:
        """
        Flip ``is_delivered`` once.

        Marking an already delivered notification returns it unchanged.

        Raises:
            NotFoundError: absent or owned by someone else
        """
        notification = await self.get_owned(notification_id, user_id)
        if not notification:
            raise NotFoundError("Notification", str(notification_id))

        if not notification.is_delivered:
            notification.is_delivered = True
            notification.delivered_at = utcnow()
            await self.session.flush()

        return notification
