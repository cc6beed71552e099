"""Repository layer for data access."""

from .base import BaseRepository
from .user_repository import UserRepository
from .profile_repository import AboutMeRepository, ProfileHistoryRepository
from .item_repository import OwnedItemRepository, GoalRepository, FeedbackRepository
from .session_repository import SessionRepository
from .document_repository import DocumentRepository, NotificationRepository
from .safety_repository import SafetyEventRepository, ClinicalAlertRepository
from .audit_repository import AuditRepository
from .memory import InMemoryDocumentStore, InMemoryNotificationStore

__all__ = [
    "BaseRepository",
    "UserRepository",
    "AboutMeRepository",
    "ProfileHistoryRepository",
    "OwnedItemRepository",
    "GoalRepository",
    "FeedbackRepository",
    "SessionRepository",
    "DocumentRepository",
    "NotificationRepository",
    "SafetyEventRepository",
    "ClinicalAlertRepository",
    "AuditRepository",
    "InMemoryDocumentStore",
    "InMemoryNotificationStore",
]
