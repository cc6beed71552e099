"""Authentication endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import get_auth_service, get_request_auditor, get_session
from ..schemas.user import AuthRequest, AuthResponse, UserResponse
from ..services import AuthService, RequestAuditor


router = APIRouter(prefix="/users", tags=["Authentication"])


@router.post("/auth", response_model=AuthResponse)
async def authenticate(
    body: AuthRequest,
    session: AsyncSession = Depends(get_session),
    auth_service: AuthService = Depends(get_auth_service),
    audit: RequestAuditor = Depends(get_request_auditor),
):
    """
    Sign in by name.

    A name seen for the first time creates the user and an empty About Me
    profile. Returns a 7-day bearer token.
    """
    user, token, created = await auth_service.authenticate(body.name, body.age)
    await session.commit()

    audit.log(user.id, "USER_CREATED" if created else "USER_LOGIN", "users", user.id)
    return AuthResponse(token=token, user=UserResponse.model_validate(user))
