"""Taxonomia de erros esperados do ciclo de vida de sessões.

Todos são resultados previstos (não falhas internas): o serviço os devolve
de forma síncrona e a camada HTTP traduz `code`/`http_status` no envelope.
Nenhum é re-tentado internamente.
"""

from __future__ import annotations

from typing import Any

ERROR_NOT_FOUND = "RESOURCE_NOT_FOUND"
ERROR_FORBIDDEN = "RESOURCE_FORBIDDEN"
ERROR_INVALID_STATE = "SESSION_INVALID_STATE"
ERROR_ALREADY_EXISTS = "ALREADY_EXISTS"
ERROR_UNAUTHORIZED = "AUTH_UNAUTHORIZED"
ERROR_VALIDATION = "VALIDATION_ERROR"
ERROR_SERVER = "SERVER_ERROR"


class SessionError(Exception):
    """Base dos erros de negócio expostos ao chamador."""

    code: str = ERROR_SERVER
    http_status: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Representação para o envelope de erro da API."""
        return {"code": self.code, "message": self.message, "details": self.details}


class NotFoundError(SessionError):
    """Oferta ou sessão inexistente."""

    code = ERROR_NOT_FOUND
    http_status = 404

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        details = {"resource": resource}
        if resource_id:
            details["id"] = resource_id
        super().__init__(f"{resource} not found", details)


class ForbiddenError(SessionError):
    """Ator não autorizado para a ação sobre a entidade."""

    code = ERROR_FORBIDDEN
    http_status = 403


class InvalidStateError(SessionError):
    """Transição ilegal a partir do status atual."""

    code = ERROR_INVALID_STATE
    http_status = 409

    def __init__(
        self,
        message: str,
        current_status: str | None = None,
        requested_status: str | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if current_status is not None:
            details["current_status"] = str(current_status)
        if requested_status is not None:
            details["requested_status"] = str(requested_status)
        super().__init__(message, details)
        self.current_status = current_status
        self.requested_status = requested_status


class AlreadyExistsError(SessionError):
    """Sessão ativa duplicada para a oferta, ou confirmação duplicada."""

    code = ERROR_ALREADY_EXISTS
    http_status = 409

    def __init__(self, resource: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"{resource} already exists", details)


class UnauthenticatedError(SessionError):
    """Requisição sem identidade do ator (gateway não injetou o header)."""

    code = ERROR_UNAUTHORIZED
    http_status = 401
