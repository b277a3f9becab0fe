"""Testes da tabela de transições da sessão de troca."""

from __future__ import annotations

import pytest

from wontan_connect.domain.errors import InvalidStateError
from wontan_connect.domain.session import (
    TERMINAL_STATES,
    TRANSITIONS,
    SessionStatus,
    allowed_transitions,
    can_transition,
    ensure_transition,
)

LEGAL_EDGES = {
    (SessionStatus.PENDING, SessionStatus.ACCEPTED),
    (SessionStatus.PENDING, SessionStatus.DECLINED),
    (SessionStatus.PENDING, SessionStatus.CANCELLED),
    (SessionStatus.ACCEPTED, SessionStatus.IN_PROGRESS),
    (SessionStatus.ACCEPTED, SessionStatus.CANCELLED),
    (SessionStatus.IN_PROGRESS, SessionStatus.AWAITING_CONFIRMATION),
    (SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED),
    (SessionStatus.IN_PROGRESS, SessionStatus.DISPUTED),
    (SessionStatus.IN_PROGRESS, SessionStatus.CANCELLED),
    (SessionStatus.AWAITING_CONFIRMATION, SessionStatus.COMPLETED),
    (SessionStatus.AWAITING_CONFIRMATION, SessionStatus.CANCELLED),
    (SessionStatus.DISPUTED, SessionStatus.COMPLETED),
    (SessionStatus.DISPUTED, SessionStatus.CANCELLED),
}


def test_table_covers_every_status():
    assert set(TRANSITIONS) == set(SessionStatus)


@pytest.mark.parametrize("current", list(SessionStatus))
@pytest.mark.parametrize("target", list(SessionStatus))
def test_can_transition_matches_edge_list(current, target):
    assert can_transition(current, target) == ((current, target) in LEGAL_EDGES)


@pytest.mark.parametrize("terminal", sorted(TERMINAL_STATES))
def test_terminal_states_have_no_outgoing_edges(terminal):
    assert allowed_transitions(terminal) == frozenset()


def test_accepted_cannot_skip_to_completed():
    assert not can_transition(SessionStatus.ACCEPTED, SessionStatus.COMPLETED)


def test_self_transition_is_not_allowed():
    for status in SessionStatus:
        assert not can_transition(status, status)


def test_can_transition_never_raises_on_unknown_value():
    assert can_transition(SessionStatus.PENDING, "archived") is False


def test_ensure_transition_reports_current_status():
    with pytest.raises(InvalidStateError) as exc_info:
        ensure_transition(SessionStatus.ACCEPTED, SessionStatus.DECLINED, action="decline")

    err = exc_info.value
    assert err.message == "Cannot decline session in accepted state"
    assert err.details == {"current_status": "accepted", "requested_status": "declined"}
    assert err.http_status == 409


def test_ensure_transition_passes_for_legal_edge():
    ensure_transition(SessionStatus.PENDING, SessionStatus.ACCEPTED)


def test_completed_reachable_only_through_in_progress_path():
    # BFS a partir de PENDING sem passar por IN_PROGRESS nunca chega a COMPLETED
    frontier = [SessionStatus.PENDING]
    seen = set(frontier)
    while frontier:
        current = frontier.pop()
        for nxt in allowed_transitions(current):
            if nxt == SessionStatus.IN_PROGRESS or nxt in seen:
                continue
            seen.add(nxt)
            frontier.append(nxt)
    assert SessionStatus.COMPLETED not in seen
