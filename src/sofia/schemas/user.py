"""User, authentication and About Me schemas."""

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .items import (
    ConcernResponse,
    EducationTopicResponse,
    GoalResponse,
    StoryChapterResponse,
    ValueResponse,
)


# ============================================================================
# Authentication
# ============================================================================

class AuthRequest(BaseModel):
    """Name-based sign in. Unknown names create a new user."""
    name: str = Field(..., min_length=1, max_length=100)
    age: Optional[int] = Field(None, ge=0, le=150)


class UserResponse(BaseModel):
    id: UUID
    name: str
    age: Optional[int] = None
    role: str
    registration_date: Optional[datetime] = None
    last_visit: Optional[datetime] = None
    total_sessions: int = 0

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    token: str
    user: UserResponse


# ============================================================================
# About Me
# ============================================================================

class BestLifeElement(BaseModel):
    element: str
    description: Optional[str] = None


class ConcernItem(BaseModel):
    concern: str
    description: Optional[str] = None


class AboutMeUpdate(BaseModel):
    """Full replacement of the About Me profile."""
    best_life_elements: List[BestLifeElement] = Field(default_factory=list, alias="bestLifeElements")
    concerns: List[ConcernItem] = Field(default_factory=list)
    confidence_level: Optional[int] = Field(None, ge=0, le=10, alias="confidenceLevel")
    user_defined_next_steps: Optional[Any] = Field(None, alias="userDefinedNextSteps")

    class Config:
        populate_by_name = True


class AboutMeResponse(BaseModel):
    id: UUID
    user_id: UUID
    best_life_elements: List[dict] = Field(default_factory=list)
    concerns: List[dict] = Field(default_factory=list)
    confidence_level: Optional[int] = None
    confidence_timestamp: Optional[datetime] = None
    user_defined_next_steps: Optional[Any] = None
    profile_completeness: int = 0
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProfileResponse(BaseModel):
    """Everything the companion knows about the user."""
    user: UserResponse
    about_me: Optional[AboutMeResponse] = Field(None, alias="aboutMe")
    story_chapters: List[StoryChapterResponse] = Field(default_factory=list, alias="storyChapters")
    goals: List[GoalResponse] = Field(default_factory=list)
    concerns: List[ConcernResponse] = Field(default_factory=list)
    values: List[ValueResponse] = Field(default_factory=list)
    education_topics: List[EducationTopicResponse] = Field(default_factory=list, alias="educationTopics")

    class Config:
        populate_by_name = True
