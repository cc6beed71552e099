"""Schemas for user-owned list items."""

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class _CamelInput(BaseModel):
    class Config:
        populate_by_name = True


# ============================================================================
# Goals, concerns, values, education topics
# ============================================================================

class GoalCreate(_CamelInput):
    goal: str = Field(..., min_length=1)
    confidence: Optional[int] = Field(None, ge=0, le=10)
    linked_best_life_elements: Optional[List[str]] = Field(None, alias="linkedBestLifeElements")
    user_note: Optional[str] = Field(None, alias="userNote")


class GoalResponse(BaseModel):
    id: UUID
    user_id: UUID
    goal: str
    status: str
    confidence: Optional[int] = None
    linked_best_life_elements: Optional[List[str]] = None
    user_note: Optional[str] = None
    last_edited: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ConcernCreate(_CamelInput):
    concern: str = Field(..., min_length=1)
    description: Optional[str] = None
    linked_best_life_elements: Optional[List[str]] = Field(None, alias="linkedBestLifeElements")
    user_note: Optional[str] = Field(None, alias="userNote")


class ConcernResponse(BaseModel):
    id: UUID
    user_id: UUID
    concern: str
    description: Optional[str] = None
    linked_best_life_elements: Optional[List[str]] = None
    user_note: Optional[str] = None
    last_edited: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ValueCreate(_CamelInput):
    value: str = Field(..., min_length=1)
    description: Optional[str] = None
    linked_best_life_elements: Optional[List[str]] = Field(None, alias="linkedBestLifeElements")
    user_note: Optional[str] = Field(None, alias="userNote")


class ValueResponse(BaseModel):
    id: UUID
    user_id: UUID
    value: str
    description: Optional[str] = None
    linked_best_life_elements: Optional[List[str]] = None
    user_note: Optional[str] = None
    last_edited: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class EducationTopicCreate(_CamelInput):
    topic: str = Field(..., min_length=1)
    content: Optional[str] = None
    linked_best_life_elements: Optional[List[str]] = Field(None, alias="linkedBestLifeElements")
    user_note: Optional[str] = Field(None, alias="userNote")


class EducationTopicResponse(BaseModel):
    id: UUID
    user_id: UUID
    topic: str
    content: Optional[str] = None
    linked_best_life_elements: Optional[List[str]] = None
    user_note: Optional[str] = None
    last_edited: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ============================================================================
# Story chapters and feedback
# ============================================================================

class StoryChapterCreate(_CamelInput):
    title: str = Field(..., min_length=1, max_length=255)
    moment: Optional[str] = None
    mood_arc: Optional[str] = Field(None, alias="moodArc")
    choices: Optional[str] = None
    learning: Optional[str] = None
    linked_best_life_elements: Optional[List[str]] = Field(None, alias="linkedBestLifeElements")


class StoryChapterResponse(BaseModel):
    id: UUID
    user_id: UUID
    title: str
    moment: Optional[str] = None
    mood_arc: Optional[str] = None
    choices: Optional[str] = None
    learning: Optional[str] = None
    linked_best_life_elements: Optional[List[str]] = None
    created_at: datetime

    class Config:
        from_attributes = True


class FeedbackCreate(_CamelInput):
    session_id: Optional[UUID] = Field(None, alias="sessionId")
    feedback_text: str = Field(..., min_length=1, alias="feedbackText")
    conversation_context: Optional[Any] = Field(None, alias="conversationContext")


class FeedbackResponse(BaseModel):
    id: UUID
    user_id: UUID
    session_id: Optional[UUID] = None
    feedback_text: str
    conversation_context: Optional[Any] = None
    is_reviewed: bool
    created_at: datetime

    class Config:
        from_attributes = True
