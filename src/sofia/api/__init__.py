"""API routers."""

from .auth import router as auth_router
from .users import router as users_router
from .sessions import router as sessions_router
from .items import (
    chapters_router,
    concerns_router,
    education_router,
    feedback_router,
    goals_router,
    values_router,
)
from .safety import router as safety_router
from .documents import router as documents_router
from .tracking import uploads_router, history_router
from .admin import router as admin_router
from .alignment import router as alignment_router

__all__ = [
    "auth_router",
    "users_router",
    "sessions_router",
    "goals_router",
    "concerns_router",
    "values_router",
    "education_router",
    "chapters_router",
    "feedback_router",
    "safety_router",
    "documents_router",
    "uploads_router",
    "history_router",
    "admin_router",
    "alignment_router",
]
