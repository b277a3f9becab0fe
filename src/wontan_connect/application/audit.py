"""Casos de uso para trilha de auditoria."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from wontan_connect.domain.audit import (
    AuditAction,
    AuditContext,
    AuditEntityType,
    AuditEvent,
    AuditLogStore,
    compute_event_hash,
)
from wontan_connect.observability.logging import get_logger, mask_id

logger = get_logger(__name__)


class AuditChainConflictError(RuntimeError):
    """Cadeia de auditoria alterada concorrentemente em todas as tentativas."""


@dataclass(slots=True)
class RecordAuditEventUseCase:
    """Append-only de eventos de auditoria com hash encadeado."""

    store: AuditLogStore
    max_retries: int = 3

    async def execute(
        self,
        *,
        entity_id: str,
        action: AuditAction,
        actor_id: str | None,
        entity_type: AuditEntityType = "session",
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        context: AuditContext | None = None,
    ) -> AuditEvent:
        """Registra evento com tolerância a concorrência."""

        context = context or AuditContext()
        for attempt in range(self.max_retries):
            latest = await self.store.get_latest_event(entity_id)
            prev_hash = latest.hash if latest else None

            event_data: dict[str, Any] = {
                "event_id": str(uuid.uuid4()),
                "action": action,
                "actor_id": actor_id,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "old_values": old_values,
                "new_values": new_values,
                "context": context,
                "timestamp": datetime.now(tz=UTC),
                "prev_hash": prev_hash,
            }
            event = AuditEvent(**event_data, hash=compute_event_hash(event_data, prev_hash))

            success = await self.store.append_event(event, expected_prev_hash=prev_hash)
            if success:
                logger.info(
                    "Audit event appended",
                    extra={
                        "entity_id": mask_id(entity_id),
                        "event_id": event.event_id,
                        "action": action,
                        "attempt": attempt + 1,
                    },
                )
                return event

        raise AuditChainConflictError("Falha ao registrar evento de auditoria após retries")

    async def history(self, entity_id: str, limit: int = 500) -> list[AuditEvent]:
        """Eventos da entidade em ordem cronológica."""
        return await self.store.list_events(entity_id, limit=limit)


def verify_chain(events: list[AuditEvent]) -> bool:
    """Recalcula os hashes e confere o encadeamento prev_hash -> hash."""
    prev_hash: str | None = None
    for event in events:
        if event.prev_hash != prev_hash:
            return False
        data = event.model_dump(exclude={"hash"})
        data["context"] = event.context
        if compute_event_hash(data, prev_hash) != event.hash:
            return False
        prev_hash = event.hash
    return True
