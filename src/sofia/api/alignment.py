"""Value alignment endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..alignment import Recommendation, ValueAlignmentScorer, ValueProfile
from ..database import Goal, User
from ..dependencies import get_current_user, get_profile_service, get_session
from ..repositories import GoalRepository
from ..schemas.alignment import (
    AlignmentRequest,
    AlignmentResultResponse,
    EnhanceRequest,
    EnhanceResponse,
)
from ..services import ProfileService


router = APIRouter(prefix="/alignment", tags=["Alignment"])


def get_alignment_scorer() -> ValueAlignmentScorer:
    return ValueAlignmentScorer()


async def load_value_profile(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    profile_service: ProfileService = Depends(get_profile_service),
) -> ValueProfile:
    """The caller's stored About Me entries plus active goals."""
    about_me = await profile_service.get_about_me(current_user.id)
    goals = await GoalRepository(Goal, session).list_active(current_user.id)

    return ValueProfile.from_records(
        best_life_elements=about_me.best_life_elements if about_me else [],
        concerns=about_me.concerns if about_me else [],
        goals=goals,
        confidence_level=about_me.confidence_level if about_me else None,
    )


@router.post("/score", response_model=AlignmentResultResponse)
async def score_response(
    body: AlignmentRequest,
    profile: ValueProfile = Depends(load_value_profile),
    scorer: ValueAlignmentScorer = Depends(get_alignment_scorer),
):
    """Score a candidate response against the caller's values."""
    result = scorer.score(body.response, profile)
    return AlignmentResultResponse.model_validate(result.to_dict())


@router.post("/enhance", response_model=EnhanceResponse)
async def enhance_response(
    body: EnhanceRequest,
    profile: ValueProfile = Depends(load_value_profile),
    scorer: ValueAlignmentScorer = Depends(get_alignment_scorer),
):
    """
    Append a value-aligned follow-up when the response scores below 3.

    Recommendations from an earlier ``/score`` call may be passed in;
    otherwise the response is scored first.
    """
    result = scorer.score(body.response, profile)
    if result.is_aligned:
        return EnhanceResponse(response=body.response, score=result.score)

    if body.recommendations is not None:
        recommendations = [Recommendation(**r.model_dump()) for r in body.recommendations]
    else:
        recommendations = result.recommendations

    return EnhanceResponse(
        response=scorer.enhance(body.response, recommendations),
        score=result.score,
    )
