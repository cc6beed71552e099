"""In-process document and notification stores.

Same interface as the database repositories. Used by tests and by tooling
that runs the ingestion pipeline without a database.
"""

from typing import Dict, List, Optional
from uuid import UUID, uuid4

from ..core.exceptions import NotFoundError
from ..database import Document, Notification, utcnow


class InMemoryDocumentStore:
    """Dict-backed document store."""

    def __init__(self):
        self.documents: Dict[UUID, Document] = {}

    async def create(self, **data) -> Document:
        data.setdefault("id", uuid4())
        data.setdefault("upload_timestamp", utcnow())
        data.setdefault("applied_count", 0)
        document = Document(**data)
        self.documents[document.id] = document
        return document

    async def get_owned(self, id: UUID, user_id: UUID) -> Optional[Document]:
        document = self.documents.get(id)
        if document is None or document.user_id != user_id:
            return None
        return document

    async def list_for_user(self, user_id: UUID) -> List[Document]:
        owned = [d for d in self.documents.values() if d.user_id == user_id]
        return sorted(owned, key=lambda d: d.upload_timestamp, reverse=True)


class InMemoryNotificationStore:
    """Dict-backed notification store keeping insertion order."""

    def __init__(self):
        self.notifications: Dict[UUID, Notification] = {}

    async def create(self, user_id: UUID, document_id: UUID, message: str) -> Notification:
        notification = Notification(
            id=uuid4(),
            user_id=user_id,
            document_id=document_id,
            message=message,
            is_delivered=False,
            delivered_at=None,
            created_at=utcnow(),
        )
        self.notifications[notification.id] = notification
        return notification

    async def list_pending(self, user_id: UUID) -> List[Notification]:
        pending = [
            n for n in self.notifications.values()
            if n.user_id == user_id and not n.is_delivered
        ]
        # Newest first; insertion order breaks timestamp ties
        return list(reversed(pending))

    async def mark_delivered(self, notification_id: UUID, user_id: UUID) -> Notification:
        notification = self.notifications.get(notification_id)
        if notification is None or notification.user_id != user_id:
            raise NotFoundError("Notification", str(notification_id))

        if not notification.is_delivered:
            notification.is_delivered = True
            notification.delivered_at = utcnow()

        return notification
