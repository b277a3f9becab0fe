"""Modelos e portas para trilha de auditoria (append-only)."""

from __future__ import annotations

import hashlib
import json
from datetime import datetime
from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field

AuditAction = Literal[
    "session.create",
    "session.accept",
    "session.decline",
    "session.cancel",
    "session.confirm",
    "session.complete",
    "session.dispute",
]
AuditEntityType = Literal["session"]


class AuditContext(BaseModel):
    """Contexto da requisição que originou o evento (sem payloads brutos)."""

    ip_address: str | None = None
    user_agent: str | None = None
    correlation_id: str | None = None


class AuditEvent(BaseModel):
    """Evento de auditoria encadeado por hash, por entidade."""

    event_id: str
    action: AuditAction
    actor_id: str | None = None
    entity_type: AuditEntityType = "session"
    entity_id: str
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    context: AuditContext = Field(default_factory=AuditContext)
    timestamp: datetime
    prev_hash: str | None = None
    hash: str


def compute_event_hash(event_data: dict[str, object], prev_hash: str | None) -> str:
    """Calcula SHA256 do json canônico + prev_hash (append-only).

    event_data não deve conter o campo "hash".
    """

    def _default(obj):
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, BaseModel):
            return obj.model_dump(mode="json")
        return str(obj)

    canonical = json.dumps(event_data, sort_keys=True, separators=(",", ":"), default=_default)
    payload = f"{canonical}{prev_hash or ''}".encode()
    return hashlib.sha256(payload).hexdigest()


class AuditLogStore(Protocol):
    """Porta para armazenamento de eventos de auditoria."""

    async def get_latest_event(self, entity_id: str) -> AuditEvent | None:
        """Retorna o último evento da entidade, se existir."""

    async def list_events(self, entity_id: str, limit: int = 500) -> list[AuditEvent]:
        """Lista eventos ordenados por timestamp asc."""

    async def append_event(self, event: AuditEvent, expected_prev_hash: str | None) -> bool:
        """Append condicional; retorna False em conflito de cadeia."""
