"""Endpoints for user-owned list items."""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import Concern, EducationTopic, Feedback, Goal, StoryChapter, User, Value, utcnow
from ..dependencies import (
    get_current_admin_user,
    get_current_user,
    get_request_auditor,
    get_session,
)
from ..repositories import FeedbackRepository, GoalRepository, OwnedItemRepository
from ..schemas.items import (
    ConcernCreate,
    ConcernResponse,
    EducationTopicCreate,
    EducationTopicResponse,
    FeedbackCreate,
    FeedbackResponse,
    GoalCreate,
    GoalResponse,
    StoryChapterCreate,
    StoryChapterResponse,
    ValueCreate,
    ValueResponse,
)
from ..services import RequestAuditor


goals_router = APIRouter(prefix="/goals", tags=["Goals"])
concerns_router = APIRouter(prefix="/concerns", tags=["Concerns"])
values_router = APIRouter(prefix="/values", tags=["Values"])
education_router = APIRouter(prefix="/education-topics", tags=["Education"])
chapters_router = APIRouter(prefix="/story-chapters", tags=["Story Chapters"])
feedback_router = APIRouter(prefix="/feedback", tags=["Feedback"])


async def _create_owned(
    repo: OwnedItemRepository,
    user: User,
    session: AsyncSession,
    audit: RequestAuditor,
    action: str,
    data: dict,
):
    item = await repo.create(user_id=user.id, **data)
    await session.commit()
    audit.log(user.id, action, repo.model.__tablename__, item.id)
    return item


def _with_edit_stamp(data: dict) -> dict:
    if data.get("user_note") is not None:
        data["last_edited"] = utcnow()
    return data


@goals_router.post("", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
async def create_goal(
    body: GoalCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    audit: RequestAuditor = Depends(get_request_auditor),
):
    goal = await _create_owned(
        GoalRepository(Goal, session), current_user, session, audit,
        "GOAL_CREATED", _with_edit_stamp(body.model_dump()),
    )
    return GoalResponse.model_validate(goal)


@concerns_router.post("", response_model=ConcernResponse, status_code=status.HTTP_201_CREATED)
async def create_concern(
    body: ConcernCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    audit: RequestAuditor = Depends(get_request_auditor),
):
    concern = await _create_owned(
        OwnedItemRepository(Concern, session), current_user, session, audit,
        "CONCERN_CREATED", _with_edit_stamp(body.model_dump()),
    )
    return ConcernResponse.model_validate(concern)


@values_router.post("", response_model=ValueResponse, status_code=status.HTTP_201_CREATED)
async def create_value(
    body: ValueCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    audit: RequestAuditor = Depends(get_request_auditor),
):
    value = await _create_owned(
        OwnedItemRepository(Value, session), current_user, session, audit,
        "VALUE_CREATED", _with_edit_stamp(body.model_dump()),
    )
    return ValueResponse.model_validate(value)


@education_router.post("", response_model=EducationTopicResponse, status_code=status.HTTP_201_CREATED)
async def create_education_topic(
    body: EducationTopicCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    audit: RequestAuditor = Depends(get_request_auditor),
):
    topic = await _create_owned(
        OwnedItemRepository(EducationTopic, session), current_user, session, audit,
        "EDUCATION_TOPIC_CREATED", _with_edit_stamp(body.model_dump()),
    )
    return EducationTopicResponse.model_validate(topic)


@chapters_router.post("", response_model=StoryChapterResponse, status_code=status.HTTP_201_CREATED)
async def create_story_chapter(
    body: StoryChapterCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    audit: RequestAuditor = Depends(get_request_auditor),
):
    chapter = await _create_owned(
        OwnedItemRepository(StoryChapter, session), current_user, session, audit,
        "CHAPTER_CREATED", body.model_dump(),
    )
    return StoryChapterResponse.model_validate(chapter)


@feedback_router.post("", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    body: FeedbackCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    audit: RequestAuditor = Depends(get_request_auditor),
):
    feedback = await _create_owned(
        FeedbackRepository(Feedback, session), current_user, session, audit,
        "FEEDBACK_SUBMITTED", body.model_dump(),
    )
    return FeedbackResponse.model_validate(feedback)


@feedback_router.get("/unreviewed", response_model=List[FeedbackResponse])
async def list_unreviewed_feedback(
    admin: User = Depends(get_current_admin_user),
    session: AsyncSession = Depends(get_session),
):
    """All unreviewed feedback, newest first (admin only)."""
    items = await FeedbackRepository(Feedback, session).list_unreviewed()
    return [FeedbackResponse.model_validate(f) for f in items]
