"""Safety events, clinical alerts and the clinician webhook."""

from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

import httpx
from loguru import logger

from ..config import settings
from ..database import ClinicalAlert, SafetyEvent, utcnow
from ..repositories.safety_repository import ClinicalAlertRepository, SafetyEventRepository


ALERT_SEVERITIES = {"high", "critical"}

SEVERITY_PRIORITY = {
    "low": 1,
    "medium": 2,
    "high": 3,
    "critical": 4,
}


class SafetyService:
    """Records safety events and escalates high/critical ones."""

    def __init__(self, event_repo: SafetyEventRepository, alert_repo: ClinicalAlertRepository):
        self.event_repo = event_repo
        self.alert_repo = alert_repo

    async def record_event(
        self,
        user_id: UUID,
        trigger_type: str,
        severity: str,
        session_id: Optional[UUID] = None,
        keywords: Optional[List[str]] = None,
        context: Optional[str] = None,
    ) -> Tuple[SafetyEvent, Optional[ClinicalAlert]]:
        """
        Store the event; high and critical severities also raise an alert.

        Returns: (event, alert or None)
        """
        notify = severity in ALERT_SEVERITIES

        event = await self.event_repo.create(
            user_id=user_id,
            session_id=session_id,
            trigger_type=trigger_type,
            severity=severity,
            keywords=keywords,
            context=context,
            clinician_notified=notify,
        )

        alert = None
        if notify:
            alert = await self.alert_repo.create(
                user_id=user_id,
                safety_event_id=event.id,
                alert_type="safety_trigger",
                severity=severity,
                priority=SEVERITY_PRIORITY[severity],
                message=f"User requires immediate clinical attention. Context: {context}",
            )
            logger.info(f"Clinical alert created for user {user_id} with priority {severity}")

        return event, alert

    async def pending_alerts(self) -> List[Dict[str, Any]]:
        return await self.alert_repo.list_pending()

    async def acknowledge(self, alert_id: UUID) -> Optional[ClinicalAlert]:
        return await self.alert_repo.acknowledge(alert_id)


def webhook_payload(alert: ClinicalAlert, context: Optional[str]) -> Dict[str, Any]:
    return {
        "alertId": str(alert.id),
        "userId": str(alert.user_id),
        "priority": alert.severity,
        "context": context,
        "timestamp": utcnow().isoformat(),
    }


async def notify_clinician(payload: Dict[str, Any], url: Optional[str] = None) -> bool:
    """
    POST an alert to the clinician system, if one is configured.

    Runs after the response; failures are logged and never propagate.
    """
    url = url or settings.CLINICIAN_WEBHOOK_URL
    if not url:
        return False

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(url, json=payload)
            response.raise_for_status()
        logger.info(f"Clinician webhook delivered for alert {payload.get('alertId')}")
        return True
    except httpx.HTTPError as e:
        logger.error(f"Clinician webhook failed for alert {payload.get('alertId')}: {e}")
        return False
