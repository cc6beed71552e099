"""Dependency injection for FastAPI endpoints."""

from typing import AsyncGenerator, Optional
from uuid import UUID

from fastapi import BackgroundTasks, Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from .database import (
    async_session_maker,
    AboutMeProfile,
    AuditLogEntry,
    ClinicalAlert,
    ConversationSession,
    Document,
    Notification,
    ProfileVariableHistory,
    SafetyEvent,
    User,
)
from .repositories import (
    AboutMeRepository,
    AuditRepository,
    ClinicalAlertRepository,
    DocumentRepository,
    NotificationRepository,
    ProfileHistoryRepository,
    SafetyEventRepository,
    SessionRepository,
    UserRepository,
)
from .services import (
    AuditRecorder,
    AuthService,
    DocumentPipeline,
    ProfileService,
    RequestAuditor,
    SafetyService,
    audit_recorder,
)
from .core.security import verify_jwt_token, TokenPayload
from .core.exceptions import AuthenticationError, ResourceAccessDeniedError


# Security scheme; missing credentials are reported as SofiaException 401
security = HTTPBearer(auto_error=False)


# Database session dependency
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# Repository dependencies
async def get_user_repository(
    session: AsyncSession = Depends(get_session)
) -> UserRepository:
    return UserRepository(User, session)


async def get_about_me_repository(
    session: AsyncSession = Depends(get_session)
) -> AboutMeRepository:
    return AboutMeRepository(AboutMeProfile, session)


async def get_profile_history_repository(
    session: AsyncSession = Depends(get_session)
) -> ProfileHistoryRepository:
    return ProfileHistoryRepository(ProfileVariableHistory, session)


async def get_session_repository(
    session: AsyncSession = Depends(get_session)
) -> SessionRepository:
    return SessionRepository(ConversationSession, session)


async def get_document_repository(
    session: AsyncSession = Depends(get_session)
) -> DocumentRepository:
    return DocumentRepository(Document, session)


async def get_notification_repository(
    session: AsyncSession = Depends(get_session)
) -> NotificationRepository:
    return NotificationRepository(Notification, session)


async def get_audit_repository(
    session: AsyncSession = Depends(get_session)
) -> AuditRepository:
    return AuditRepository(AuditLogEntry, session)


# Service dependencies
async def get_auth_service(
    user_repo: UserRepository = Depends(get_user_repository),
    about_me_repo: AboutMeRepository = Depends(get_about_me_repository),
) -> AuthService:
    return AuthService(user_repo, about_me_repo)


async def get_profile_service(
    about_me_repo: AboutMeRepository = Depends(get_about_me_repository),
    history_repo: ProfileHistoryRepository = Depends(get_profile_history_repository),
) -> ProfileService:
    return ProfileService(about_me_repo, history_repo)


async def get_document_pipeline(
    document_repo: DocumentRepository = Depends(get_document_repository),
    notification_repo: NotificationRepository = Depends(get_notification_repository),
) -> DocumentPipeline:
    return DocumentPipeline(document_repo, notification_repo)


async def get_safety_service(
    session: AsyncSession = Depends(get_session)
) -> SafetyService:
    return SafetyService(
        SafetyEventRepository(SafetyEvent, session),
        ClinicalAlertRepository(ClinicalAlert, session),
    )


# Audit dependencies
def get_audit_recorder() -> AuditRecorder:
    """Shared recorder. Overridden in tests to inject a failing session factory."""
    return audit_recorder


async def get_request_auditor(
    request: Request,
    background_tasks: BackgroundTasks,
    recorder: AuditRecorder = Depends(get_audit_recorder),
) -> RequestAuditor:
    return RequestAuditor(recorder, request, background_tasks)


# Authentication dependencies
async def get_optional_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[TokenPayload]:
    """Token payload if a valid bearer token was sent, None otherwise."""
    if not credentials:
        return None
    return verify_jwt_token(credentials.credentials, expected_type="access")


async def get_current_user_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> TokenPayload:
    """
    Get current user from JWT token.

    Raises:
        AuthenticationError: If token is missing, invalid or expired
    """
    if not credentials:
        raise AuthenticationError("Access token required")

    payload = verify_jwt_token(credentials.credentials, expected_type="access")
    if not payload:
        raise AuthenticationError("Invalid or expired token")

    return payload


async def get_current_user(
    payload: TokenPayload = Depends(get_current_user_payload),
    user_repo: UserRepository = Depends(get_user_repository),
) -> User:
    """
    Get current authenticated user.

    Raises:
        AuthenticationError: If user not found or deactivated
    """
    try:
        user_id = UUID(payload.sub)
    except ValueError:
        raise AuthenticationError("Invalid or expired token")

    user = await user_repo.get(user_id)
    if not user or not user.is_active:
        raise AuthenticationError("User not found")

    return user


async def get_current_admin_user(
    user: User = Depends(get_current_user)
) -> User:
    """
    Get current user and verify admin role.

    Raises:
        ResourceAccessDeniedError: If user is not admin
    """
    if user.role != "admin":
        raise ResourceAccessDeniedError("Admin access required")

    return user


def ensure_self_or_admin(user: User, user_id: UUID) -> None:
    """Per-user listings are visible to that user and to admins only."""
    if user.id != user_id and user.role != "admin":
        raise ResourceAccessDeniedError("You can only access your own records")
