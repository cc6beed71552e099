"""Service layer for business logic."""

from .audit_service import AuditContext, AuditRecorder, RequestAuditor, audit_recorder
from .auth_service import AuthService
from .document_service import DocumentPipeline, IngestionResult
from .profile_service import ProfileService, calculate_completeness
from .safety_service import SafetyService, notify_clinician

__all__ = [
    "AuditContext",
    "AuditRecorder",
    "RequestAuditor",
    "audit_recorder",
    "AuthService",
    "DocumentPipeline",
    "IngestionResult",
    "ProfileService",
    "calculate_completeness",
    "SafetyService",
    "notify_clinician",
]
