"""Safety event and clinical alert schemas."""

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


Severity = Literal["low", "medium", "high", "critical"]


class SafetyEventCreate(BaseModel):
    session_id: Optional[UUID] = Field(None, alias="sessionId")
    trigger_type: str = Field(..., min_length=1, max_length=100, alias="triggerType")
    severity: Severity
    keywords: Optional[List[str]] = None
    context: Optional[str] = None

    class Config:
        populate_by_name = True


class SafetyEventResponse(BaseModel):
    id: UUID
    user_id: UUID
    session_id: Optional[UUID] = None
    trigger_type: str
    severity: str
    keywords: Optional[List[str]] = None
    context: Optional[str] = None
    clinician_notified: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ClinicalAlertResponse(BaseModel):
    id: UUID
    user_id: UUID
    safety_event_id: Optional[UUID] = None
    alert_type: str
    severity: str
    priority: int
    message: str
    acknowledged: bool
    acknowledged_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PendingAlertResponse(ClinicalAlertResponse):
    """Pending alert with the user's name and the triggering context."""
    user_name: Optional[str] = None
    context: Optional[str] = None
