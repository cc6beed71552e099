"""Client-reported document uploads and profile variable changes."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError
from ..database import User
from ..dependencies import (
    ensure_self_or_admin,
    get_current_user,
    get_document_repository,
    get_profile_history_repository,
    get_session,
)
from ..middleware import audit_action
from ..repositories import DocumentRepository, ProfileHistoryRepository
from ..schemas.document import (
    DocumentResponse,
    DocumentUploadCreate,
    DocumentUploadUpdate,
    ProfileHistoryCreate,
    ProfileHistoryResponse,
)


uploads_router = APIRouter(
    prefix="/document-uploads",
    tags=["Tracking"],
    dependencies=[Depends(audit_action("document_upload"))],
)
history_router = APIRouter(
    prefix="/profile-history",
    tags=["Tracking"],
    dependencies=[Depends(audit_action("profile_change"))],
)


# ============================================================================
# Document uploads
# ============================================================================

@uploads_router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def track_document_upload(
    body: DocumentUploadCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    document_repo: DocumentRepository = Depends(get_document_repository),
):
    """Record an upload that was processed on the client."""
    document = await document_repo.create(
        user_id=current_user.id,
        filename=body.filename,
        file_type=body.file_type,
        file_size=body.file_size,
        extracted_count=body.extracted_count,
        doc_metadata=body.metadata,
    )
    await session.commit()
    return DocumentResponse.model_validate(document)


@uploads_router.put("/{upload_id}", response_model=DocumentResponse)
async def update_document_upload(
    upload_id: UUID,
    body: DocumentUploadUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    document_repo: DocumentRepository = Depends(get_document_repository),
):
    """Record how many extracted items the user applied."""
    document = await document_repo.record_applied(upload_id, current_user.id, body.applied_count)
    if not document:
        raise NotFoundError("Document upload", str(upload_id))

    await session.commit()
    return DocumentResponse.model_validate(document)


@uploads_router.get("/{user_id}", response_model=List[DocumentResponse])
async def list_document_uploads(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    document_repo: DocumentRepository = Depends(get_document_repository),
):
    ensure_self_or_admin(current_user, user_id)
    documents = await document_repo.list_for_user(user_id)
    return [DocumentResponse.model_validate(d) for d in documents]


# ============================================================================
# Profile history
# ============================================================================

@history_router.post("", response_model=ProfileHistoryResponse, status_code=status.HTTP_201_CREATED)
async def track_profile_change(
    body: ProfileHistoryCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    history_repo: ProfileHistoryRepository = Depends(get_profile_history_repository),
):
    entry = await history_repo.create(
        user_id=current_user.id,
        variable_name=body.variable_name,
        variable_value=body.variable_value,
        previous_value=body.previous_value,
        source=body.source,
        source_details=body.source_details,
    )
    await session.commit()
    return ProfileHistoryResponse.model_validate(entry)


@history_router.get("/{user_id}", response_model=List[ProfileHistoryResponse])
async def list_profile_history(
    user_id: UUID,
    variable_name: Optional[str] = Query(None, alias="variableName"),
    source: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    history_repo: ProfileHistoryRepository = Depends(get_profile_history_repository),
):
    """Profile variable history, newest first."""
    ensure_self_or_admin(current_user, user_id)
    entries = await history_repo.list_for_user(
        user_id, variable_name=variable_name, source=source, limit=limit
    )
    return [ProfileHistoryResponse.model_validate(e) for e in entries]
