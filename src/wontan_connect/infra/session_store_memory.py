"""Implementação em memória de SessionStore (dev/testes)."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from wontan_connect.domain.enums import ParticipantRole
from wontan_connect.domain.models import (
    ExchangeConfirmation,
    ExchangeSession,
    SessionFilters,
)
from wontan_connect.domain.session.states import (
    NON_TERMINAL_STATES,
    ConfirmationType,
    SessionStatus,
)
from wontan_connect.infra.session_contract import (
    SessionConflictError,
    SessionStore,
    SessionStoreError,
)
from wontan_connect.observability.logging import get_logger, mask_id
from wontan_connect.utils.ids import new_id

logger: logging.Logger = get_logger(__name__)


def _matches_role(session: ExchangeSession, user_id: str, role: ParticipantRole) -> bool:
    if role == ParticipantRole.INITIATOR:
        return session.initiator_id == user_id
    if role == ParticipantRole.RESPONDER:
        return session.responder_id == user_id
    return session.is_participant(user_id)


class InMemorySessionStore(SessionStore):
    """Armazenamento em memória para desenvolvimento e testes.

    ⚠️ Não usar em produção!
    - Não persiste entre restarts
    - Não funciona com múltiplas instâncias Cloud Run

    Os métodos não cedem o event loop entre a verificação de unicidade e a
    escrita, então cada operação é atômica dentro do processo. Os objetos
    devolvidos são cópias: mutá-los não altera o armazenamento.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, ExchangeSession] = {}
        self._confirmations: dict[tuple[str, str, ConfirmationType], ExchangeConfirmation] = {}

    async def create_session(self, session: ExchangeSession) -> ExchangeSession:
        if session.id in self._sessions:
            raise SessionConflictError("Session id already in use", existing_id=session.id)

        existing = self._find_active(session.initiator_id, session.offer_id)
        if existing is not None:
            raise SessionConflictError(
                "Active session already exists for user and offer",
                existing_id=existing.id,
            )

        self._sessions[session.id] = session.model_copy(deep=True)
        logger.debug("Session created (in-memory)", extra={"session_id": mask_id(session.id)})
        return session.model_copy(deep=True)

    async def get_session_by_id(self, session_id: str) -> ExchangeSession | None:
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def update_session_status(
        self, session_id: str, status: SessionStatus, **fields: Any
    ) -> ExchangeSession:
        return self._update(session_id, {"status": status, **fields})

    async def update_agreed_terms(
        self, session_id: str, terms: dict[str, Any]
    ) -> ExchangeSession:
        return self._update(session_id, {"agreed_terms": dict(terms)})

    async def find_active_session_for_user_and_offer(
        self, user_id: str, offer_id: str
    ) -> ExchangeSession | None:
        session = self._find_active(user_id, offer_id)
        return session.model_copy(deep=True) if session else None

    async def list_sessions(
        self, user_id: str, filters: SessionFilters
    ) -> tuple[list[ExchangeSession], int]:
        matched = [
            s
            for s in self._sessions.values()
            if _matches_role(s, user_id, filters.role)
            and (filters.status is None or s.status == filters.status)
        ]
        matched.sort(key=lambda s: s.updated_at, reverse=True)
        page = matched[filters.offset : filters.offset + filters.limit]
        return [s.model_copy(deep=True) for s in page], len(matched)

    async def create_confirmation(
        self,
        session_id: str,
        user_id: str,
        confirmation_type: ConfirmationType,
        notes: str | None = None,
    ) -> ExchangeConfirmation:
        key = (session_id, user_id, confirmation_type)
        existing = self._confirmations.get(key)
        if existing is not None:
            raise SessionConflictError("Confirmation already recorded", existing_id=existing.id)

        confirmation = ExchangeConfirmation(
            id=new_id(),
            session_id=session_id,
            user_id=user_id,
            type=confirmation_type,
            notes=notes,
            confirmed_at=datetime.now(tz=UTC),
        )
        self._confirmations[key] = confirmation
        logger.debug(
            "Confirmation recorded (in-memory)",
            extra={"session_id": mask_id(session_id), "type": str(confirmation_type)},
        )
        return confirmation.model_copy()

    async def find_confirmation(
        self, session_id: str, user_id: str, confirmation_type: ConfirmationType
    ) -> ExchangeConfirmation | None:
        found = self._confirmations.get((session_id, user_id, confirmation_type))
        return found.model_copy() if found else None

    async def list_confirmations(self, session_id: str) -> list[ExchangeConfirmation]:
        items = [c for c in self._confirmations.values() if c.session_id == session_id]
        items.sort(key=lambda c: c.confirmed_at)
        return [c.model_copy() for c in items]

    def _find_active(self, user_id: str, offer_id: str) -> ExchangeSession | None:
        for session in self._sessions.values():
            if (
                session.initiator_id == user_id
                and session.offer_id == offer_id
                and session.status in NON_TERMINAL_STATES
            ):
                return session
        return None

    def _update(self, session_id: str, changes: dict[str, Any]) -> ExchangeSession:
        current = self._sessions.get(session_id)
        if current is None:
            raise SessionStoreError(f"Session {mask_id(session_id)} not found")

        updated = current.model_copy(
            update={**changes, "updated_at": datetime.now(tz=UTC)}, deep=True
        )
        self._sessions[session_id] = updated
        logger.debug(
            "Session updated (in-memory)",
            extra={"session_id": mask_id(session_id), "status": str(updated.status)},
        )
        return updated.model_copy(deep=True)
