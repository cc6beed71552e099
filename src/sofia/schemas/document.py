"""Document, notification and tracking schemas."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field


# ============================================================================
# Documents
# ============================================================================

class DocumentResponse(BaseModel):
    id: UUID
    user_id: UUID
    filename: str
    file_type: Optional[str] = None
    file_size: int = 0
    upload_timestamp: datetime
    extracted_count: int = 0
    applied_count: int = 0
    processed_timestamp: Optional[datetime] = None
    metadata: Optional[dict] = Field(
        None, validation_alias=AliasChoices("doc_metadata", "metadata")
    )

    class Config:
        from_attributes = True


class NotificationResponse(BaseModel):
    id: UUID
    user_id: UUID
    document_id: UUID
    message: str
    is_delivered: bool
    delivered_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class UploadResponse(BaseModel):
    """Result of running an upload through the ingestion pipeline."""
    success: bool = True
    document: DocumentResponse
    notification: NotificationResponse
    extracted_text: str = Field(..., alias="extractedText")
    message: str
    document_type: str = Field(..., alias="documentType")

    class Config:
        populate_by_name = True


class DocumentContentResponse(BaseModel):
    id: UUID
    filename: str
    file_type: Optional[str] = Field(None, alias="fileType")
    upload_timestamp: datetime = Field(..., alias="uploadTimestamp")
    extracted_text: str = Field("", alias="extractedText")
    document_type: str = Field("unknown", alias="documentType")
    file_size: int = Field(0, alias="fileSize")

    class Config:
        populate_by_name = True


# ============================================================================
# Tracking (client-reported uploads and profile changes)
# ============================================================================

class DocumentUploadCreate(BaseModel):
    filename: str = Field(..., min_length=1, max_length=255)
    file_type: Optional[str] = Field(None, alias="fileType")
    file_size: int = Field(0, ge=0, alias="fileSize")
    extracted_count: int = Field(0, ge=0, alias="extractedCount")
    metadata: Optional[dict] = None

    class Config:
        populate_by_name = True


class DocumentUploadUpdate(BaseModel):
    applied_count: int = Field(..., ge=0, alias="appliedCount")

    class Config:
        populate_by_name = True


class ProfileHistoryCreate(BaseModel):
    variable_name: str = Field(..., min_length=1, max_length=100, alias="variableName")
    variable_value: Optional[Any] = Field(None, alias="variableValue")
    previous_value: Optional[Any] = Field(None, alias="previousValue")
    source: str = "manual"
    source_details: Optional[dict] = Field(None, alias="sourceDetails")

    class Config:
        populate_by_name = True


class ProfileHistoryResponse(BaseModel):
    id: UUID
    user_id: UUID
    variable_name: str
    variable_value: Optional[Any] = None
    previous_value: Optional[Any] = None
    source: str
    source_details: Optional[dict] = None
    timestamp: datetime

    class Config:
        from_attributes = True
