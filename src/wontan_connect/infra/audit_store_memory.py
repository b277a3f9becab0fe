"""AuditLogStore em memória (dev/testes)."""

from __future__ import annotations

from wontan_connect.domain.audit import AuditEvent


class InMemoryAuditLogStore:
    """Trilha append-only por entidade, mantida em listas."""

    def __init__(self) -> None:
        self._events: dict[str, list[AuditEvent]] = {}

    async def get_latest_event(self, entity_id: str) -> AuditEvent | None:
        events = self._events.get(entity_id)
        return events[-1] if events else None

    async def list_events(self, entity_id: str, limit: int = 500) -> list[AuditEvent]:
        return list(self._events.get(entity_id, [])[:limit])

    async def append_event(self, event: AuditEvent, expected_prev_hash: str | None) -> bool:
        events = self._events.setdefault(event.entity_id, [])
        latest_hash = events[-1].hash if events else None
        if latest_hash != expected_prev_hash:
            return False
        events.append(event)
        return True
