"""Conversation session endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.encryption import encrypt_json
from ..core.exceptions import NotFoundError
from ..database import User
from ..dependencies import (
    get_current_user,
    get_request_auditor,
    get_session,
    get_session_repository,
    get_user_repository,
)
from ..repositories import SessionRepository, UserRepository
from ..schemas.session import SessionResponse, SessionUpdate
from ..services import RequestAuditor


router = APIRouter(prefix="/sessions", tags=["Sessions"])


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    session_repo: SessionRepository = Depends(get_session_repository),
    user_repo: UserRepository = Depends(get_user_repository),
    audit: RequestAuditor = Depends(get_request_auditor),
):
    """Start a conversation session and count it on the user."""
    conversation = await session_repo.create(user_id=current_user.id)
    await user_repo.increment_total_sessions(current_user.id)
    await session.commit()

    audit.log(current_user.id, "SESSION_CREATED", "sessions", conversation.id)
    return SessionResponse.from_session(conversation)


@router.put("/{session_id}", response_model=SessionResponse)
async def update_session(
    session_id: UUID,
    body: SessionUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    session_repo: SessionRepository = Depends(get_session_repository),
    audit: RequestAuditor = Depends(get_request_auditor),
):
    """Store duration, topics and the (encrypted) transcript."""
    conversation = await session_repo.get_owned(session_id, current_user.id)
    if not conversation:
        raise NotFoundError("Session", str(session_id))

    conversation.duration_minutes = body.duration_minutes
    conversation.main_topics = body.main_topics
    conversation.conversation_log = encrypt_json(body.conversation_log)
    await session.commit()

    audit.log(current_user.id, "SESSION_UPDATED", "sessions", conversation.id)
    return SessionResponse.from_session(conversation)
