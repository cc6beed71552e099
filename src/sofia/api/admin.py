"""Admin endpoints."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError
from ..database import User
from ..dependencies import (
    get_audit_repository,
    get_current_admin_user,
    get_request_auditor,
    get_safety_service,
    get_session,
)
from ..repositories import AuditRepository
from ..schemas.admin import AuditEntryResponse
from ..schemas.safety import ClinicalAlertResponse, PendingAlertResponse
from ..services import RequestAuditor, SafetyService


router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/audit-trail/{user_id}", response_model=List[AuditEntryResponse])
async def get_audit_trail(
    user_id: UUID,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    limit: int = Query(100, ge=1, le=1000),
    admin: User = Depends(get_current_admin_user),
    audit_repo: AuditRepository = Depends(get_audit_repository),
):
    """A user's audit trail, newest first. Date bounds are inclusive."""
    rows = await audit_repo.list_for_user(user_id, start=start_date, end=end_date, limit=limit)
    return [
        AuditEntryResponse.model_validate(row["entry"]).model_copy(
            update={"user_name": row["user_name"]}
        )
        for row in rows
    ]


@router.get("/clinical-alerts/pending", response_model=List[PendingAlertResponse])
async def get_pending_alerts(
    admin: User = Depends(get_current_admin_user),
    safety_service: SafetyService = Depends(get_safety_service),
):
    """Unacknowledged alerts, highest priority first, then oldest first."""
    rows = await safety_service.pending_alerts()
    return [
        PendingAlertResponse.model_validate(row["alert"]).model_copy(
            update={"user_name": row["user_name"], "context": row["context"]}
        )
        for row in rows
    ]


@router.put("/clinical-alerts/{alert_id}/acknowledge", response_model=ClinicalAlertResponse)
async def acknowledge_alert(
    alert_id: UUID,
    admin: User = Depends(get_current_admin_user),
    session: AsyncSession = Depends(get_session),
    safety_service: SafetyService = Depends(get_safety_service),
    audit: RequestAuditor = Depends(get_request_auditor),
):
    alert = await safety_service.acknowledge(alert_id)
    if not alert:
        raise NotFoundError("Clinical alert", str(alert_id))

    await session.commit()
    audit.log(admin.id, "CLINICAL_ALERT_ACKNOWLEDGED", "clinical_alerts", alert.id)
    return ClinicalAlertResponse.model_validate(alert)
