"""Response audit interceptor."""

from typing import Callable, Optional
from uuid import UUID

from fastapi import BackgroundTasks, Depends, Request

from .core.security import TokenPayload
from .database import utcnow
from .dependencies import get_audit_recorder, get_optional_token_payload
from .services.audit_service import AuditContext, AuditRecorder


def audit_action(action: str) -> Callable:
    """
    Build a dependency that audits every successful response of a route.

    Attach it to a router (``dependencies=[Depends(audit_action("..."))]``)
    or to a single route. The audit write is a background task, so it runs
    only after the response has been sent and never for a response produced
    by an exception handler. Several stages on one route each write their
    own entry.
    """

    async def audit_response(
        request: Request,
        background_tasks: BackgroundTasks,
        payload: Optional[TokenPayload] = Depends(get_optional_token_payload),
        recorder: AuditRecorder = Depends(get_audit_recorder),
    ) -> None:
        route = request.scope.get("route")
        path_template = getattr(route, "path_format", None) or request.url.path

        background_tasks.add_task(
            recorder.record,
            _actor_id(payload),
            action,
            f"{request.method} {path_template}",
            _resource_id(request.path_params),
            AuditContext.from_request(request),
            {
                "timestamp": utcnow().isoformat(),
                "method": request.method,
                "path": request.url.path,
            },
        )

    audit_response.__name__ = f"audit_{action}"
    return audit_response


def _resource_id(path_params: dict) -> Optional[str]:
    # Routes name their subject after its kind: document_id, upload_id, ...
    if "id" in path_params:
        return path_params["id"]
    for name, value in path_params.items():
        if name.endswith("_id"):
            return value
    return None


def _actor_id(payload: Optional[TokenPayload]) -> Optional[UUID]:
    if payload is None:
        return None
    try:
        return UUID(payload.sub)
    except ValueError:
        return None
