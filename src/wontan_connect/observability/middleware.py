"""Middleware de contexto da requisição: correlation_id e ator.

Os dois valores ficam em ContextVars para que o filtro de logging os
injete em todo registro emitido durante a requisição, inclusive pelos
side effects disparados a partir dela.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")
_actor_id: ContextVar[str] = ContextVar("actor_id", default="")


def get_correlation_id() -> str:
    """Retorna o correlation_id corrente (ou vazio)."""

    return _correlation_id.get()


def get_actor_id() -> str:
    """Usuário que originou a requisição corrente (ou vazio)."""
    return _actor_id.get()


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Propaga (ou gera) o correlation_id e vincula o ator da requisição.

    O header de correlation é devolvido na resposta. O ator vem do header
    de identidade injetado pelo gateway; a autorização continua nas rotas.
    """

    def __init__(
        self,
        app: ASGIApp,
        correlation_header: str = "X-Correlation-ID",
        actor_header: str = "X-User-Id",
    ) -> None:
        super().__init__(app)
        self._correlation_header = correlation_header
        self._actor_header = actor_header

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        correlation_id = request.headers.get(self._correlation_header) or uuid.uuid4().hex
        actor_id = (request.headers.get(self._actor_header) or "").strip()

        correlation_token = _correlation_id.set(correlation_id)
        actor_token = _actor_id.set(actor_id)
        try:
            response = await call_next(request)
        finally:
            _actor_id.reset(actor_token)
            _correlation_id.reset(correlation_token)

        response.headers[self._correlation_header] = correlation_id
        return response
