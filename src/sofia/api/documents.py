"""Document upload, content and notification endpoints."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..core.exceptions import ValidationError
from ..database import User
from ..dependencies import (
    ensure_self_or_admin,
    get_current_user,
    get_document_pipeline,
    get_session,
)
from ..middleware import audit_action
from ..schemas.document import (
    DocumentContentResponse,
    DocumentResponse,
    NotificationResponse,
    UploadResponse,
)
from ..services import DocumentPipeline


router = APIRouter(
    prefix="/documents",
    tags=["Documents"],
    dependencies=[Depends(audit_action("document_management"))],
)


@router.post("/upload", response_model=UploadResponse)
async def upload_document(
    document: Optional[UploadFile] = File(None),
    uploader: Optional[str] = Form(None),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    pipeline: DocumentPipeline = Depends(get_document_pipeline),
):
    """
    Upload a PDF, text or JSON document (multipart field ``document``).

    The text is extracted, the document stored and a notification queued
    for the user.
    """
    if document is None:
        raise ValidationError("No file uploaded")

    # One byte over the limit is enough to reject
    payload = await document.read(settings.MAX_UPLOAD_BYTES + 1)

    result = await pipeline.ingest(
        user_id=current_user.id,
        payload=payload,
        content_type=document.content_type,
        filename=document.filename or "upload",
        uploader=uploader,
    )
    await session.commit()

    return UploadResponse(
        success=True,
        document=DocumentResponse.model_validate(result.document),
        notification=NotificationResponse.model_validate(result.notification),
        extracted_text=result.preview,
        message=result.message,
        document_type=result.document_type,
    )


@router.get("", response_model=List[DocumentResponse])
async def list_documents(
    current_user: User = Depends(get_current_user),
    pipeline: DocumentPipeline = Depends(get_document_pipeline),
):
    """The current user's documents, newest first."""
    documents = await pipeline.list_documents(current_user.id)
    return [DocumentResponse.model_validate(d) for d in documents]


@router.get("/content/{document_id}", response_model=DocumentContentResponse)
async def get_document_content(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    pipeline: DocumentPipeline = Depends(get_document_pipeline),
):
    """Full extracted text of one of the user's documents."""
    document = await pipeline.get_content(document_id, current_user.id)
    metadata = document.doc_metadata or {}

    return DocumentContentResponse(
        id=document.id,
        filename=document.filename,
        file_type=document.file_type,
        upload_timestamp=document.upload_timestamp,
        extracted_text=metadata.get("extractedText") or "",
        document_type=metadata.get("documentType") or "unknown",
        file_size=document.file_size,
    )


@router.get("/notifications/{user_id}", response_model=List[NotificationResponse])
async def list_pending_notifications(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    pipeline: DocumentPipeline = Depends(get_document_pipeline),
):
    """Undelivered document notifications, newest first."""
    ensure_self_or_admin(current_user, user_id)
    notifications = await pipeline.pending_notifications(user_id)
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.put("/notifications/{notification_id}/delivered", response_model=NotificationResponse)
async def mark_notification_delivered(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    pipeline: DocumentPipeline = Depends(get_document_pipeline),
):
    """Mark a notification delivered. Repeating the call is harmless."""
    notification = await pipeline.mark_delivered(notification_id, current_user.id)
    await session.commit()
    return NotificationResponse.model_validate(notification)
