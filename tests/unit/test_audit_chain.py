from __future__ import annotations

import pytest

from wontan_connect.application.audit import (
    AuditChainConflictError,
    RecordAuditEventUseCase,
    verify_chain,
)
from wontan_connect.domain.audit import AuditContext, AuditEvent
from wontan_connect.infra.audit_store_memory import InMemoryAuditLogStore


class ConflictingAuditStore(InMemoryAuditLogStore):
    """Simula outro writer vencendo sempre a corrida da cadeia."""

    def __init__(self) -> None:
        super().__init__()
        self.attempts = 0

    async def append_event(self, event: AuditEvent, expected_prev_hash: str | None) -> bool:
        self.attempts += 1
        return False


@pytest.mark.asyncio
async def test_hash_chain_links_prev_hash():
    store = InMemoryAuditLogStore()
    use_case = RecordAuditEventUseCase(store=store)

    ev1 = await use_case.execute(entity_id="s1", action="session.create", actor_id="u1")
    ev2 = await use_case.execute(
        entity_id="s1",
        action="session.accept",
        actor_id="u2",
        old_values={"status": "pending"},
        new_values={"status": "accepted"},
        context=AuditContext(ip_address="10.0.0.1", correlation_id="corr-1"),
    )

    assert ev1.prev_hash is None
    assert ev2.prev_hash == ev1.hash
    assert ev2.hash != ev1.hash
    assert verify_chain(await use_case.history("s1")) is True


@pytest.mark.asyncio
async def test_chains_are_independent_per_entity():
    store = InMemoryAuditLogStore()
    use_case = RecordAuditEventUseCase(store=store)

    await use_case.execute(entity_id="s1", action="session.create", actor_id="u1")
    other = await use_case.execute(entity_id="s2", action="session.create", actor_id="u1")

    assert other.prev_hash is None


@pytest.mark.asyncio
async def test_tampered_event_breaks_chain():
    store = InMemoryAuditLogStore()
    use_case = RecordAuditEventUseCase(store=store)
    await use_case.execute(entity_id="s1", action="session.create", actor_id="u1")
    await use_case.execute(entity_id="s1", action="session.cancel", actor_id="u1")

    events = await use_case.history("s1")
    events[0] = events[0].model_copy(update={"actor_id": "intruso"})
    assert verify_chain(events) is False


@pytest.mark.asyncio
async def test_gives_up_after_max_retries():
    store = ConflictingAuditStore()
    use_case = RecordAuditEventUseCase(store=store, max_retries=3)

    with pytest.raises(AuditChainConflictError):
        await use_case.execute(entity_id="s1", action="session.create", actor_id="u1")
    assert store.attempts == 3
