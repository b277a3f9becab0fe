"""Consenso por dupla confirmação.

Cada participante declara fatos ("enviei", "recebi"). A sessão só é
concluída quando as DUAS partes declararam o tipo de conclusão
(`received`). Confirmações são fatos idempotentes por
(sessão, usuário, tipo), nunca contadores.

O motor só decide; quem persiste o novo status é o serviço de ciclo de
vida, sob o lock da sessão.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel

from wontan_connect.domain.errors import AlreadyExistsError, ForbiddenError
from wontan_connect.domain.models import ExchangeConfirmation, ExchangeSession
from wontan_connect.domain.protocols.session_store import ConfirmationStoreProtocol
from wontan_connect.domain.session import (
    COMPLETION_CONFIRMATION,
    ConfirmationType,
    SessionStatus,
    ensure_transition,
)
from wontan_connect.infra.session_contract import SessionConflictError
from wontan_connect.observability.logging import get_logger, mask_id

logger = get_logger(__name__)


class ConsensusSummary(BaseModel):
    """Quem já declarou o quê (exposto no detalhe da sessão)."""

    initiator: list[ConfirmationType]
    responder: list[ConfirmationType]
    completion_type: ConfirmationType
    is_complete: bool


def is_consensus_reached(
    session: ExchangeSession,
    confirmations: list[ExchangeConfirmation],
    completion_type: ConfirmationType = COMPLETION_CONFIRMATION,
) -> bool:
    """True sse iniciador E respondente registraram `completion_type`."""
    confirmed_by = {c.user_id for c in confirmations if c.type == completion_type}
    return session.initiator_id in confirmed_by and session.responder_id in confirmed_by


def summarize(
    session: ExchangeSession,
    confirmations: list[ExchangeConfirmation],
    completion_type: ConfirmationType = COMPLETION_CONFIRMATION,
) -> ConsensusSummary:
    def _types_of(user_id: str) -> list[ConfirmationType]:
        return sorted({c.type for c in confirmations if c.user_id == user_id})

    return ConsensusSummary(
        initiator=_types_of(session.initiator_id),
        responder=_types_of(session.responder_id),
        completion_type=completion_type,
        is_complete=is_consensus_reached(session, confirmations, completion_type),
    )


@dataclass(slots=True)
class ConsensusDecision:
    """Resultado da avaliação após registrar uma confirmação."""

    complete: bool
    next_status: SessionStatus
    confirmations: list[ExchangeConfirmation] = field(default_factory=list)


class ConfirmationConsensus:
    """Registra confirmações e avalia a condição de conclusão."""

    def __init__(
        self,
        store: ConfirmationStoreProtocol,
        completion_type: ConfirmationType = COMPLETION_CONFIRMATION,
    ) -> None:
        self._store = store
        self._completion_type = completion_type

    async def record_confirmation(
        self,
        session: ExchangeSession,
        user_id: str,
        confirmation_type: ConfirmationType,
        notes: str | None = None,
    ) -> ExchangeConfirmation:
        """Grava a declaração do participante.

        Raises:
            ForbiddenError: usuário não participa da sessão
            AlreadyExistsError: (sessão, usuário, tipo) já registrado
        """
        if not session.is_participant(user_id):
            raise ForbiddenError("Only session participants can confirm")

        existing = await self._store.find_confirmation(session.id, user_id, confirmation_type)
        if existing is not None:
            raise AlreadyExistsError("Confirmation", {"confirmation_id": existing.id})

        try:
            confirmation = await self._store.create_confirmation(
                session.id, user_id, confirmation_type, notes
            )
        except SessionConflictError as e:
            raise AlreadyExistsError("Confirmation", {"confirmation_id": e.existing_id}) from e

        logger.info(
            "Confirmation recorded",
            extra={
                "session_id": mask_id(session.id),
                "user_id": mask_id(user_id),
                "type": str(confirmation_type),
            },
        )
        return confirmation

    async def evaluate(
        self, session: ExchangeSession, current_status: SessionStatus
    ) -> ConsensusDecision:
        """Relê todas as confirmações e decide se a sessão deve concluir.

        A leitura acontece depois da gravação, dentro do mesmo lock, então a
        confirmação que acabou de ser registrada sempre é considerada.
        """
        confirmations = await self._store.list_confirmations(session.id)
        if not is_consensus_reached(session, confirmations, self._completion_type):
            return ConsensusDecision(False, current_status, confirmations)

        ensure_transition(current_status, SessionStatus.COMPLETED, action="complete")
        return ConsensusDecision(True, SessionStatus.COMPLETED, confirmations)

    async def summary(self, session: ExchangeSession) -> ConsensusSummary:
        confirmations = await self._store.list_confirmations(session.id)
        return summarize(session, confirmations, self._completion_type)
