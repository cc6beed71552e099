"""Safety event endpoint."""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import User
from ..dependencies import get_current_user, get_request_auditor, get_safety_service, get_session
from ..schemas.safety import SafetyEventCreate, SafetyEventResponse
from ..services import RequestAuditor, SafetyService, notify_clinician
from ..services.safety_service import webhook_payload


router = APIRouter(prefix="/safety-events", tags=["Safety"])


@router.post("", response_model=SafetyEventResponse, status_code=status.HTTP_201_CREATED)
async def create_safety_event(
    body: SafetyEventCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    safety_service: SafetyService = Depends(get_safety_service),
    audit: RequestAuditor = Depends(get_request_auditor),
):
    """
    Record a safety event.

    High and critical events raise a clinical alert; the clinician webhook
    (when configured) is called after the response.
    """
    event, alert = await safety_service.record_event(
        user_id=current_user.id,
        trigger_type=body.trigger_type,
        severity=body.severity,
        session_id=body.session_id,
        keywords=body.keywords,
        context=body.context,
    )
    await session.commit()

    if alert is not None:
        background_tasks.add_task(notify_clinician, webhook_payload(alert, body.context))

    audit.log(current_user.id, "SAFETY_EVENT_CREATED", "safety_events", event.id)
    return SafetyEventResponse.model_validate(event)
