"""Dependências injetadas nas rotas."""

from __future__ import annotations

from fastapi import Request

from wontan_connect.application.lifecycle import SessionLifecycleService
from wontan_connect.config.settings import Settings
from wontan_connect.domain.audit import AuditContext
from wontan_connect.domain.errors import UnauthenticatedError
from wontan_connect.observability.middleware import get_correlation_id


def get_settings(request: Request) -> Settings:
    """Retorna settings da aplicação."""

    return request.app.state.settings


def get_lifecycle_service(request: Request) -> SessionLifecycleService:
    """Retorna o serviço de ciclo de vida configurado no bootstrap."""

    return request.app.state.lifecycle_service


def get_current_user_id(request: Request) -> str:
    """Identidade do ator, injetada pelo gateway no header configurado."""
    header = request.app.state.settings.user_id_header
    user_id = (request.headers.get(header) or "").strip()
    if not user_id:
        raise UnauthenticatedError("Missing authenticated user")
    return user_id


def get_audit_context(request: Request) -> AuditContext:
    """Contexto da requisição para a trilha de auditoria."""
    return AuditContext(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        correlation_id=get_correlation_id() or None,
    )
