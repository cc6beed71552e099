"""
Document ingestion pipeline.

An upload moves through ``received -> classified -> extracted -> stored ->
notified``. Size and type are checked before anything is stored; extraction
failures are soft (the extracted text becomes a diagnostic placeholder and
the pipeline continues). Storage is pluggable: the database repositories in
production, the in-memory stores in tests.
"""

import io
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol
from uuid import UUID

from loguru import logger
from PyPDF2 import PdfReader

from ..config import settings
from ..core.exceptions import NotFoundError, ValidationError
from ..database import Document, Notification, utcnow


PREVIEW_CHARS = 500
DEFAULT_UPLOADER = "Your provider"

PDF = "pdf"
JSON_DOC = "json"
TEXT = "text"
UNKNOWN = "unknown"


class DocumentStore(Protocol):
    async def create(self, **data: Any) -> Document: ...

    async def get_owned(self, id: UUID, user_id: UUID) -> Optional[Document]: ...

    async def list_for_user(self, user_id: UUID) -> List[Document]: ...


class NotificationStore(Protocol):
    async def create(self, user_id: UUID, document_id: UUID, message: str) -> Notification: ...

    async def list_pending(self, user_id: UUID) -> List[Notification]: ...

    async def mark_delivered(self, notification_id: UUID, user_id: UUID) -> Notification: ...


@dataclass
class IngestionResult:
    document: Document
    notification: Notification
    extracted_text: str
    document_type: str

    @property
    def preview(self) -> str:
        if len(self.extracted_text) > PREVIEW_CHARS:
            return self.extracted_text[:PREVIEW_CHARS] + "..."
        return self.extracted_text

    @property
    def message(self) -> str:
        return (
            "Document uploaded and processed successfully. "
            f"{len(self.extracted_text)} characters extracted."
        )


def is_allowed_type(content_type: Optional[str]) -> bool:
    """PDF, JSON and any ``text/*`` type."""
    if not content_type:
        return False
    mime = content_type.split(";")[0].strip().lower()
    return mime in ("application/pdf", "application/json") or mime.startswith("text/")


def classify(content_type: Optional[str]) -> str:
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime == "application/pdf":
        return PDF
    if mime == "application/json":
        return JSON_DOC
    if mime.startswith("text/"):
        return TEXT
    return UNKNOWN


def extract_text(payload: bytes, document_type: str) -> str:
    """
    Extract text for ``document_type``.

    Never raises; a failure yields ``"<Kind> processing failed: <reason>"``.
    """
    if document_type == PDF:
        try:
            reader = PdfReader(io.BytesIO(payload))
            return "\n".join(page.extract_text() or "" for page in reader.pages)
        except Exception as e:
            logger.warning(f"PDF processing error: {e}")
            return f"PDF processing failed: {e}"

    if document_type in (TEXT, JSON_DOC):
        try:
            return payload.decode("utf-8")
        except UnicodeDecodeError as e:
            logger.warning(f"Text file processing error: {e}")
            return f"Text processing failed: {e}"

    return ""


class DocumentPipeline:
    """Turns an upload into a stored Document plus one Notification."""

    def __init__(
        self,
        document_store: DocumentStore,
        notification_store: NotificationStore,
        max_bytes: Optional[int] = None,
    ):
        self.documents = document_store
        self.notifications = notification_store
        self.max_bytes = settings.MAX_UPLOAD_BYTES if max_bytes is None else max_bytes

    async def ingest(
        self,
        user_id: UUID,
        payload: bytes,
        content_type: Optional[str],
        filename: str,
        uploader: Optional[str] = None,
    ) -> IngestionResult:
        """
        Run an upload through the pipeline.

        Raises:
            ValidationError: payload too large or type not accepted. Nothing
                is stored in that case.
        """
        # received
        if len(payload) > self.max_bytes:
            raise ValidationError(
                f"File too large: {len(payload)} bytes exceeds the {self.max_bytes} byte limit"
            )
        if not is_allowed_type(content_type):
            raise ValidationError("Only PDF, text, and JSON files are allowed")

        # classified
        document_type = classify(content_type)

        # extracted
        extracted = extract_text(payload, document_type)

        # stored
        now = utcnow()
        document = await self.documents.create(
            user_id=user_id,
            filename=filename,
            file_type=content_type,
            file_size=len(payload),
            upload_timestamp=now,
            extracted_count=1 if extracted else 0,
            doc_metadata={
                "originalName": filename,
                "documentType": document_type,
                "extractedText": extracted,
                "uploadTimestamp": now.isoformat(),
            },
        )

        # notified
        notification = await self.notifications.create(
            user_id=user_id,
            document_id=document.id,
            message=f"{uploader or DEFAULT_UPLOADER} has uploaded a new document: {filename}",
        )

        logger.info(
            f"Document {document.id} ({document_type}, {len(payload)} bytes) "
            f"stored for user {user_id}, notification {notification.id}"
        )
        return IngestionResult(
            document=document,
            notification=notification,
            extracted_text=extracted,
            document_type=document_type,
        )

    async def get_content(self, document_id: UUID, user_id: UUID) -> Document:
        document = await self.documents.get_owned(document_id, user_id)
        if not document:
            raise NotFoundError("Document", str(document_id))
        return document

    async def list_documents(self, user_id: UUID) -> List[Document]:
        return await self.documents.list_for_user(user_id)

    async def pending_notifications(self, user_id: UUID) -> List[Notification]:
        return await self.notifications.list_pending(user_id)

    async def mark_delivered(self, notification_id: UUID, user_id: UUID) -> Notification:
        return await self.notifications.mark_delivered(notification_id, user_id)
