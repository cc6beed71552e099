"""Conversation session repository."""

from .item_repository import OwnedItemRepository
from ..database import ConversationSession


class SessionRepository(OwnedItemRepository[ConversationSession]):
    """Repository for conversation sessions."""
