"""Database models and connection for the Sofia API."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CHAR,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    TypeDecorator,
    event,
    make_url,
)
from sqlalchemy.dialects.postgresql import UUID as PGUUID, JSONB
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import NullPool

from .config import settings

DATABASE_URL = settings.DATABASE_URL

# Check if using PostgreSQL
IS_POSTGRES = DATABASE_URL.startswith("postgresql")

JSONType = JSONB if IS_POSTGRES else JSON


def utcnow() -> datetime:
    """Naive UTC timestamp, the format stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class GUID(TypeDecorator):
    """Platform-independent GUID type.

    Uses PostgreSQL's UUID type when available, otherwise uses CHAR(36).
    """
    impl = CHAR(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(PGUUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is None or dialect.name == 'postgresql':
            return value
        return str(value)

    def process_result_value(self, value, dialect):
        if value is not None and not isinstance(value, UUID):
            return UUID(value)
        return value


# Create async engine
if DATABASE_URL.startswith("sqlite"):
    # Connections are cheap for SQLite and must not outlive an event loop
    engine = create_async_engine(DATABASE_URL, echo=False, poolclass=NullPool)

    @event.listens_for(engine.sync_engine, "connect")
    def _sqlite_pragmas(dbapi_connection, connection_record):
        # WAL lets the audit writer commit while a request session still reads
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()
else:
    engine = create_async_engine(DATABASE_URL, echo=False, pool_pre_ping=True)

# Session factory
async_session_maker = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class User(Base):
    """Companion user. Created on first authentication by name."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(GUID(), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    role: Mapped[str] = mapped_column(String(20), default="user", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    registration_date: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    last_visit: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    total_sessions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )


class AboutMeProfile(Base):
    """Best-life elements, concerns and confidence (one per user)."""

    __tablename__ = "about_me_profiles"

    id: Mapped[UUID] = mapped_column(GUID(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), unique=True
    )
    # [{"element": ..., "description": ...}]
    best_life_elements: Mapped[list] = mapped_column(JSONType, default=list)
    # [{"concern": ..., "description": ...}]
    concerns: Mapped[list] = mapped_column(JSONType, default=list)
    confidence_level: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    confidence_timestamp: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    user_defined_next_steps: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)
    profile_completeness: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )


class ProfileVariableHistory(Base):
    """Append-only log of profile variable changes."""

    __tablename__ = "profile_variable_history"

    id: Mapped[UUID] = mapped_column(GUID(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    variable_name: Mapped[str] = mapped_column(String(100), nullable=False)
    variable_value: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)
    previous_value: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)
    source: Mapped[str] = mapped_column(String(50), default="manual", nullable=False)
    source_details: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)


class ConversationSession(Base):
    """One conversation with the companion."""

    __tablename__ = "sessions"

    id: Mapped[UUID] = mapped_column(GUID(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    start_time: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    duration_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    main_topics: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    # Fernet token of the JSON transcript
    conversation_log: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class Goal(Base):
    __tablename__ = "goals"

    id: Mapped[UUID] = mapped_column(GUID(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    goal: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)
    confidence: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    linked_best_life_elements: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    user_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_edited: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class Concern(Base):
    __tablename__ = "concerns"

    id: Mapped[UUID] = mapped_column(GUID(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    concern: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    linked_best_life_elements: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    user_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_edited: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class Value(Base):
    __tablename__ = "values"

    id: Mapped[UUID] = mapped_column(GUID(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    value: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    linked_best_life_elements: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    user_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_edited: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class EducationTopic(Base):
    __tablename__ = "education_topics"

    id: Mapped[UUID] = mapped_column(GUID(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    topic: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    linked_best_life_elements: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    user_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_edited: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class StoryChapter(Base):
    __tablename__ = "story_chapters"

    id: Mapped[UUID] = mapped_column(GUID(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    moment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    mood_arc: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    choices: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    learning: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    linked_best_life_elements: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class Feedback(Base):
    __tablename__ = "feedback"

    id: Mapped[UUID] = mapped_column(GUID(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    session_id: Mapped[Optional[UUID]] = mapped_column(
        GUID(), ForeignKey("sessions.id", ondelete="SET NULL"), nullable=True
    )
    feedback_text: Mapped[str] = mapped_column(Text, nullable=False)
    conversation_context: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)
    is_reviewed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class Document(Base):
    """Uploaded document with its extracted text embedded in ``doc_metadata``."""

    __tablename__ = "document_uploads"

    id: Mapped[UUID] = mapped_column(GUID(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    file_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    file_size: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    upload_timestamp: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    extracted_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    applied_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    processed_timestamp: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    # "metadata" is reserved on declarative classes
    doc_metadata: Mapped[Optional[dict]] = mapped_column("metadata", JSONType, nullable=True)


class Notification(Base):
    """Delivery-pending message for a user about a stored document."""

    __tablename__ = "notifications"

    id: Mapped[UUID] = mapped_column(GUID(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    document_id: Mapped[UUID] = mapped_column(
        GUID(), ForeignKey("document_uploads.id", ondelete="CASCADE")
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_delivered: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)


class SafetyEvent(Base):
    __tablename__ = "safety_events"

    id: Mapped[UUID] = mapped_column(GUID(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    session_id: Mapped[Optional[UUID]] = mapped_column(
        GUID(), ForeignKey("sessions.id", ondelete="SET NULL"), nullable=True
    )
    trigger_type: Mapped[str] = mapped_column(String(100), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    keywords: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    context: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    clinician_notified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class ClinicalAlert(Base):
    __tablename__ = "clinical_alerts"

    id: Mapped[UUID] = mapped_column(GUID(), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    safety_event_id: Mapped[Optional[UUID]] = mapped_column(
        GUID(), ForeignKey("safety_events.id", ondelete="SET NULL"), nullable=True
    )
    alert_type: Mapped[str] = mapped_column(String(50), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    acknowledged: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    acknowledged_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class AuditLogEntry(Base):
    """Immutable audit row. Never updated or deleted by the application."""

    __tablename__ = "audit_log"

    id: Mapped[UUID] = mapped_column(GUID(), primary_key=True, default=uuid4)
    # No FK: audit rows must survive even when the actor id is bogus
    user_id: Mapped[Optional[UUID]] = mapped_column(GUID(), nullable=True, index=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    resource_type: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    resource_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    audit_metadata: Mapped[Optional[dict]] = mapped_column("metadata", JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)


async def init_db():
    """Initialize database tables."""
    if DATABASE_URL.startswith("sqlite"):
        db_path = make_url(DATABASE_URL).database
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
