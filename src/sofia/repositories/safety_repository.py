"""Safety events and clinical alerts."""

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select

from .base import BaseRepository
from .item_repository import OwnedItemRepository
from ..database import ClinicalAlert, SafetyEvent, User, utcnow


class SafetyEventRepository(OwnedItemRepository[SafetyEvent]):
    """Repository for safety events."""


class ClinicalAlertRepository(BaseRepository[ClinicalAlert]):
    """Repository for clinical alerts raised by high-severity safety events."""

    async def list_pending(self) -> List[Dict[str, Any]]:
        """Unacknowledged alerts, highest priority first, oldest first within a priority."""
        result = await self.session.execute(
            select(ClinicalAlert, User.name, SafetyEvent.context)
            .join(User, ClinicalAlert.user_id == User.id)
            .outerjoin(SafetyEvent, ClinicalAlert.safety_event_id == SafetyEvent.id)
            .where(ClinicalAlert.acknowledged.is_(False))
            .order_by(ClinicalAlert.priority.desc(), ClinicalAlert.created_at.asc())
        )
        return [
            {"alert": alert, "user_name": user_name, "context": context}
            for alert, user_name, context in result.all()
        ]

    async def acknowledge(self, alert_id: UUID) -> Optional[ClinicalAlert]:
        alert = await self.get(alert_id)
        if not alert:
            return None

        if not alert.acknowledged:
            alert.acknowledged = True
            alert.acknowledged_at = utcnow()
            await self.session.flush()

        return alert
