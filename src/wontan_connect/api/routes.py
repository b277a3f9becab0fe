"""Rotas HTTP de sessões de troca."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from wontan_connect.api.dependencies import (
    get_audit_context,
    get_current_user_id,
    get_lifecycle_service,
    get_settings,
)
from wontan_connect.api.schemas import (
    AcceptSessionRequest,
    ConfirmSessionRequest,
    CreateSessionRequest,
    DisputeSessionRequest,
    ReasonRequest,
)
from wontan_connect.application.lifecycle import SessionLifecycleService
from wontan_connect.config.settings import Settings
from wontan_connect.domain.audit import AuditContext
from wontan_connect.domain.enums import ParticipantRole
from wontan_connect.domain.models import SessionFilters
from wontan_connect.domain.session.states import SessionStatus

router = APIRouter()


def _ok(data: BaseModel | list[BaseModel]) -> dict[str, Any]:
    if isinstance(data, list):
        payload: Any = [item.model_dump(mode="json") for item in data]
    else:
        payload = data.model_dump(mode="json")
    return {"success": True, "data": payload}


@router.get("/health")
def health(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    """Healthcheck simples para Cloud Run."""
    return {"status": "ok", "service": settings.service_name, "version": settings.version}


@router.get("/v1/sessions")
async def list_sessions(
    role: ParticipantRole = ParticipantRole.ALL,
    session_status: SessionStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    user_id: str = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    service: SessionLifecycleService = Depends(get_lifecycle_service),
) -> dict[str, Any]:
    """Sessões do usuário, por papel e status, mais recentes primeiro."""
    filters = SessionFilters(
        role=role,
        status=session_status,
        page=page,
        limit=limit or settings.default_page_size,
    )
    result = await service.list_sessions(user_id, filters)
    return _ok(result)


@router.post("/v1/sessions", status_code=status.HTTP_201_CREATED)
async def create_session(
    body: CreateSessionRequest,
    user_id: str = Depends(get_current_user_id),
    context: AuditContext = Depends(get_audit_context),
    service: SessionLifecycleService = Depends(get_lifecycle_service),
) -> dict[str, Any]:
    session = await service.create(
        user_id,
        body.offer_id,
        proposed_amount=body.proposed_amount,
        message=body.message,
        context=context,
    )
    return _ok(session)


@router.get("/v1/sessions/{session_id}")
async def get_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: SessionLifecycleService = Depends(get_lifecycle_service),
) -> dict[str, Any]:
    """Detalhe com confirmações e estado do consenso."""
    details = await service.get_details(user_id, session_id)
    return _ok(details)


@router.get("/v1/sessions/{session_id}/history")
async def get_session_history(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: SessionLifecycleService = Depends(get_lifecycle_service),
) -> dict[str, Any]:
    events = await service.history(user_id, session_id)
    return _ok(events)


@router.post("/v1/sessions/{session_id}/accept")
async def accept_session(
    session_id: str,
    body: AcceptSessionRequest | None = None,
    user_id: str = Depends(get_current_user_id),
    context: AuditContext = Depends(get_audit_context),
    service: SessionLifecycleService = Depends(get_lifecycle_service),
) -> dict[str, Any]:
    accepted_amount = body.accepted_amount if body else None
    session = await service.accept(
        user_id, session_id, accepted_amount=accepted_amount, context=context
    )
    return _ok(session)


@router.post("/v1/sessions/{session_id}/decline")
async def decline_session(
    session_id: str,
    body: ReasonRequest | None = None,
    user_id: str = Depends(get_current_user_id),
    context: AuditContext = Depends(get_audit_context),
    service: SessionLifecycleService = Depends(get_lifecycle_service),
) -> dict[str, Any]:
    session = await service.decline(
        user_id, session_id, reason=body.reason if body else None, context=context
    )
    return _ok(session)


@router.post("/v1/sessions/{session_id}/cancel")
async def cancel_session(
    session_id: str,
    body: ReasonRequest | None = None,
    user_id: str = Depends(get_current_user_id),
    context: AuditContext = Depends(get_audit_context),
    service: SessionLifecycleService = Depends(get_lifecycle_service),
) -> dict[str, Any]:
    session = await service.cancel(
        user_id, session_id, reason=body.reason if body else None, context=context
    )
    return _ok(session)


@router.post("/v1/sessions/{session_id}/confirm")
async def confirm_session(
    session_id: str,
    body: ConfirmSessionRequest,
    user_id: str = Depends(get_current_user_id),
    context: AuditContext = Depends(get_audit_context),
    service: SessionLifecycleService = Depends(get_lifecycle_service),
) -> dict[str, Any]:
    """Registra "enviei"/"recebi"; conclui quando as duas partes receberam."""
    session = await service.confirm(
        user_id, session_id, body.confirmation_type, notes=body.notes, context=context
    )
    return _ok(session)


@router.post("/v1/sessions/{session_id}/dispute")
async def dispute_session(
    session_id: str,
    body: DisputeSessionRequest,
    user_id: str = Depends(get_current_user_id),
    context: AuditContext = Depends(get_audit_context),
    service: SessionLifecycleService = Depends(get_lifecycle_service),
) -> dict[str, Any]:
    session = await service.dispute(user_id, session_id, body.reason, context=context)
    return _ok(session)
