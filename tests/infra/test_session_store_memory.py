"""Testes para InMemorySessionStore."""

from __future__ import annotations

import pytest

from wontan_connect.domain.enums import ParticipantRole
from wontan_connect.domain.models import SessionFilters
from wontan_connect.domain.session import ConfirmationType, SessionStatus
from wontan_connect.infra.session_contract import SessionConflictError, SessionStoreError
from wontan_connect.infra.session_store_memory import InMemorySessionStore

from tests.helpers.factories import ALICE, BOB, CAROL, make_session


@pytest.mark.asyncio
async def test_create_and_get_roundtrip():
    store = InMemorySessionStore()
    session = make_session()

    await store.create_session(session)
    loaded = await store.get_session_by_id(session.id)

    assert loaded == session
    assert await store.get_session_by_id("missing") is None


@pytest.mark.asyncio
async def test_returned_sessions_are_copies():
    store = InMemorySessionStore()
    session = await store.create_session(make_session())

    session.agreed_terms["proposed_amount"] = 1.0
    loaded = await store.get_session_by_id(session.id)
    assert loaded.agreed_terms["proposed_amount"] == 100.0


@pytest.mark.asyncio
async def test_second_active_session_for_same_pair_conflicts():
    store = InMemorySessionStore()
    first = await store.create_session(make_session("s1"))

    with pytest.raises(SessionConflictError) as exc_info:
        await store.create_session(make_session("s2"))
    assert exc_info.value.existing_id == first.id


@pytest.mark.asyncio
async def test_terminal_session_does_not_block_new_one():
    store = InMemorySessionStore()
    await store.create_session(make_session("s1"))
    await store.update_session_status("s1", SessionStatus.DECLINED)

    await store.create_session(make_session("s2"))
    active = await store.find_active_session_for_user_and_offer(ALICE, "offer-0001")
    assert active.id == "s2"


@pytest.mark.asyncio
async def test_update_status_sets_fields_and_updated_at():
    store = InMemorySessionStore()
    created = await store.create_session(make_session())

    updated = await store.update_session_status(
        created.id, SessionStatus.CANCELLED, cancelled_by_id=BOB, cancellation_reason="x"
    )
    assert updated.status == SessionStatus.CANCELLED
    assert updated.cancelled_by_id == BOB
    assert updated.updated_at > created.updated_at


@pytest.mark.asyncio
async def test_update_unknown_session_fails():
    store = InMemorySessionStore()
    with pytest.raises(SessionStoreError):
        await store.update_session_status("missing", SessionStatus.ACCEPTED)


@pytest.mark.asyncio
async def test_update_agreed_terms_replaces_terms():
    store = InMemorySessionStore()
    await store.create_session(make_session())

    updated = await store.update_agreed_terms(
        "session-0001", {"proposed_amount": 100.0, "accepted_amount": 80.0}
    )
    assert updated.agreed_amount == 80.0


@pytest.mark.asyncio
async def test_list_sessions_by_role():
    store = InMemorySessionStore()
    await store.create_session(make_session("s1", initiator_id=ALICE, offer_id="o1"))
    await store.create_session(make_session("s2", initiator_id=CAROL, offer_id="o2"))

    items, total = await store.list_sessions(BOB, SessionFilters(role=ParticipantRole.RESPONDER))
    assert total == 2
    items, total = await store.list_sessions(ALICE, SessionFilters(role=ParticipantRole.RESPONDER))
    assert (items, total) == ([], 0)
    items, total = await store.list_sessions(CAROL, SessionFilters(role=ParticipantRole.ALL))
    assert [s.id for s in items] == ["s2"]


@pytest.mark.asyncio
async def test_confirmation_triple_is_unique():
    store = InMemorySessionStore()
    first = await store.create_confirmation("s1", ALICE, ConfirmationType.SENT, notes="pix feito")

    with pytest.raises(SessionConflictError):
        await store.create_confirmation("s1", ALICE, ConfirmationType.SENT)

    found = await store.find_confirmation("s1", ALICE, ConfirmationType.SENT)
    assert found.id == first.id
    assert found.notes == "pix feito"
    assert await store.find_confirmation("s1", ALICE, ConfirmationType.RECEIVED) is None
    assert len(await store.list_confirmations("s1")) == 1
    assert await store.list_confirmations("s2") == []
