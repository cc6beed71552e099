"""User profile endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import (
    Concern,
    EducationTopic,
    Goal,
    StoryChapter,
    User,
    Value,
)
from ..dependencies import (
    get_current_user,
    get_profile_service,
    get_request_auditor,
    get_session,
)
from ..repositories import OwnedItemRepository
from ..schemas.items import (
    ConcernResponse,
    EducationTopicResponse,
    GoalResponse,
    StoryChapterResponse,
    ValueResponse,
)
from ..schemas.user import AboutMeResponse, AboutMeUpdate, ProfileResponse, UserResponse
from ..services import ProfileService, RequestAuditor


router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    profile_service: ProfileService = Depends(get_profile_service),
    audit: RequestAuditor = Depends(get_request_auditor),
):
    """Everything stored for the current user, lists newest first."""
    about_me = await profile_service.get_about_me(current_user.id)

    async def owned(model, schema):
        items = await OwnedItemRepository(model, session).list_for_user(current_user.id)
        return [schema.model_validate(i) for i in items]

    response = ProfileResponse(
        user=UserResponse.model_validate(current_user),
        about_me=AboutMeResponse.model_validate(about_me) if about_me else None,
        story_chapters=await owned(StoryChapter, StoryChapterResponse),
        goals=await owned(Goal, GoalResponse),
        concerns=await owned(Concern, ConcernResponse),
        values=await owned(Value, ValueResponse),
        education_topics=await owned(EducationTopic, EducationTopicResponse),
    )

    audit.log(current_user.id, "PROFILE_VIEWED", "users", current_user.id)
    return response


@router.put("/about-me", response_model=AboutMeResponse)
async def update_about_me(
    body: AboutMeUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    profile_service: ProfileService = Depends(get_profile_service),
    audit: RequestAuditor = Depends(get_request_auditor),
):
    """Replace the About Me profile, recording each changed variable."""
    profile = await profile_service.update_about_me(current_user.id, body.model_dump())
    await session.commit()

    audit.log(current_user.id, "ABOUT_ME_UPDATED", "about_me_profiles", profile.id)
    return AboutMeResponse.model_validate(profile)
