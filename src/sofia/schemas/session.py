"""Conversation session schemas."""

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel

from ..core.encryption import decrypt_json
from ..database import ConversationSession


class SessionUpdate(BaseModel):
    duration_minutes: Optional[int] = None
    main_topics: Optional[List[str]] = None
    conversation_log: Optional[Any] = None


class SessionResponse(BaseModel):
    id: UUID
    user_id: UUID
    start_time: datetime
    duration_minutes: Optional[int] = None
    main_topics: Optional[List[str]] = None
    conversation_log: Optional[Any] = None

    @classmethod
    def from_session(cls, session: ConversationSession) -> "SessionResponse":
        """Build the response with the transcript decrypted."""
        return cls(
            id=session.id,
            user_id=session.user_id,
            start_time=session.start_time,
            duration_minutes=session.duration_minutes,
            main_topics=session.main_topics,
            conversation_log=decrypt_json(session.conversation_log),
        )
