"""
Audit recorder.

Writes one immutable ``audit_log`` row per call in its own session, so a
failing audit write can never roll back or fail the request it describes.
Failures are logged and swallowed.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from uuid import UUID

from fastapi import BackgroundTasks, Request
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import AuditWriteError
from ..database import AuditLogEntry, async_session_maker, utcnow


@dataclass
class AuditContext:
    """Network origin and client agent of the audited request."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def from_request(cls, request: Request) -> "AuditContext":
        return cls(
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )


class AuditRecorder:
    """Fire-and-forget audit writer."""

    def __init__(self, session_factory: Callable[[], AsyncSession] = async_session_maker):
        self.session_factory = session_factory

    async def record(
        self,
        actor_id: Optional[UUID],
        action: str,
        resource_type: Optional[str],
        resource_id: Optional[Any] = None,
        context: Optional[AuditContext] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Write one audit row. Never raises."""
        try:
            await self._write(actor_id, action, resource_type, resource_id, context, metadata)
        except AuditWriteError as e:
            logger.error(f"Audit log error: {e.message}")

    async def _write(self, actor_id, action, resource_type, resource_id, context, metadata) -> None:
        context = context or AuditContext()
        blob = {"timestamp": utcnow().isoformat()}
        if metadata:
            blob.update(metadata)

        try:
            async with self.session_factory() as session:
                session.add(AuditLogEntry(
                    user_id=actor_id,
                    action=action,
                    resource_type=resource_type,
                    resource_id=str(resource_id) if resource_id is not None else None,
                    ip_address=context.ip_address,
                    user_agent=context.user_agent,
                    audit_metadata=blob,
                ))
                await session.commit()
        except Exception as e:
            raise AuditWriteError(f"{action} on {resource_type}: {e}") from e


class RequestAuditor:
    """
    Per-request handle that schedules audit writes after the response.

    Handlers that are not behind an ``audit_action`` stage use this to log
    their own action names.
    """

    def __init__(self, recorder: AuditRecorder, request: Request, background_tasks: BackgroundTasks):
        self.recorder = recorder
        self.request = request
        self.background_tasks = background_tasks

    def log(
        self,
        actor_id: Optional[UUID],
        action: str,
        resource_type: str,
        resource_id: Optional[Any] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.background_tasks.add_task(
            self.recorder.record,
            actor_id,
            action,
            resource_type,
            resource_id,
            AuditContext.from_request(self.request),
            metadata,
        )


# Shared recorder used by the API
audit_recorder = AuditRecorder()
