"""SessionLifecycleService: orquestrador do ciclo de vida da sessão de troca.

Fluxo de cada mutação:
1. Adquire o lock da sessão (ou do par iniciador/oferta, na criação)
2. Relê o estado persistido, valida autorização e transição
3. Persiste o novo status / termos
4. Libera o lock
5. Auditoria + notificação (best-effort, com timeout)

Erros esperados (NotFound, Forbidden, InvalidState, AlreadyExists) são
devolvidos ao chamador sem retry. Falhas de persistência propagam.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel

from wontan_connect.application.audit import RecordAuditEventUseCase
from wontan_connect.application.consensus import (
    ConfirmationConsensus,
    ConsensusDecision,
    ConsensusSummary,
)
from wontan_connect.application.side_effects import SideEffectDispatcher
from wontan_connect.domain.audit import AuditAction, AuditContext, AuditEvent
from wontan_connect.domain.conversations import ConversationProvisioner
from wontan_connect.domain.enums import NotificationEvent, OfferStatus
from wontan_connect.domain.errors import (
    AlreadyExistsError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
)
from wontan_connect.domain.models import (
    ExchangeConfirmation,
    ExchangeSession,
    PaginationMeta,
    SessionFilters,
    SessionPage,
)
from wontan_connect.domain.notifications import Notifier, SessionUpdate
from wontan_connect.domain.protocols.offers import OfferLookupProtocol
from wontan_connect.domain.session import (
    CONFIRMABLE_STATES,
    INITIAL_STATUS,
    ConfirmationType,
    SessionStatus,
    ensure_transition,
)
from wontan_connect.infra.locks import KeyedLock
from wontan_connect.infra.session_contract import SessionConflictError, SessionStore
from wontan_connect.observability.logging import get_logger, mask_id
from wontan_connect.observability.timing import timed
from wontan_connect.utils.ids import active_take_key, new_id

logger = get_logger(__name__)

AuditEntry = tuple[AuditAction, dict[str, Any] | None, dict[str, Any] | None]


class SessionDetails(BaseModel):
    """Sessão com confirmações, estado do consenso e conversa."""

    session: ExchangeSession
    confirmations: list[ExchangeConfirmation]
    consensus: ConsensusSummary
    conversation_id: str | None = None


class SessionLifecycleService:
    """Aplica a máquina de estados e o consenso sobre as sessões persistidas.

    Construído uma vez por app (colaboradores injetados); não guarda estado
    de sessão em memória entre chamadas.
    """

    def __init__(
        self,
        *,
        sessions: SessionStore,
        offers: OfferLookupProtocol,
        conversations: ConversationProvisioner,
        audit: RecordAuditEventUseCase,
        notifier: Notifier,
        locks: KeyedLock,
        side_effects: SideEffectDispatcher | None = None,
        max_page_size: int = 100,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._sessions = sessions
        self._offers = offers
        self._conversations = conversations
        self._audit = audit
        self._notifier = notifier
        self._locks = locks
        self._effects = side_effects or SideEffectDispatcher()
        self._consensus = ConfirmationConsensus(sessions)
        self._max_page_size = max_page_size
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    # ------------------------------------------------------------------
    # Mutações
    # ------------------------------------------------------------------

    async def create(
        self,
        user_id: str,
        offer_id: str,
        proposed_amount: float | None = None,
        message: str | None = None,
        context: AuditContext | None = None,
    ) -> ExchangeSession:
        """Cria sessão PENDING para a oferta (iniciador = usuário)."""
        with timed("session.create"):
            offer = await self._offers.get_offer(offer_id)
            if offer is None:
                raise NotFoundError("Offer", offer_id)
            if offer.status != OfferStatus.ACTIVE:
                raise InvalidStateError(
                    "Offer is not active", current_status=offer.status
                )
            if offer.owner_id == user_id:
                raise ForbiddenError("Cannot create a session on your own offer")

            async with self._locks.hold(f"take:{active_take_key(user_id, offer_id)}"):
                existing = await self._sessions.find_active_session_for_user_and_offer(
                    user_id, offer_id
                )
                if existing is not None:
                    raise AlreadyExistsError(
                        "Active session for this offer", {"session_id": existing.id}
                    )

                now = self._clock()
                terms = {"proposed_amount": proposed_amount, "message": message}
                session = ExchangeSession(
                    id=new_id(),
                    offer_id=offer.id,
                    initiator_id=user_id,
                    responder_id=offer.owner_id,
                    type=offer.type,
                    status=INITIAL_STATUS,
                    agreed_terms={k: v for k, v in terms.items() if v is not None},
                    created_at=now,
                    updated_at=now,
                )
                try:
                    created = await self._sessions.create_session(session)
                except SessionConflictError as e:
                    raise AlreadyExistsError(
                        "Active session for this offer", {"session_id": e.existing_id}
                    ) from e

        logger.info(
            "Session created",
            extra={
                "session_id": mask_id(created.id),
                "offer_id": mask_id(offer_id),
                "initiator_id": mask_id(user_id),
            },
        )
        await self._after_commit(
            created,
            actor_id=user_id,
            audit=[("session.create", None, {"status": created.status, **created.agreed_terms})],
            event=NotificationEvent.SESSION_REQUEST,
            recipients=[created.responder_id],
            context=context,
        )
        return created

    async def accept(
        self,
        user_id: str,
        session_id: str,
        accepted_amount: float | None = None,
        context: AuditContext | None = None,
    ) -> ExchangeSession:
        """Dono da oferta aceita; provisiona a conversa da sessão."""
        with timed("session.accept", session_id):
            async with self._locks.hold(self._session_key(session_id)):
                session = await self._load(session_id)
                if user_id != session.responder_id:
                    raise ForbiddenError("Only the offer owner can accept sessions")
                ensure_transition(session.status, SessionStatus.ACCEPTED, action="accept")

                # Status e termos na mesma escrita.
                fields: dict[str, Any] = {}
                if accepted_amount is not None:
                    fields["agreed_terms"] = {
                        **session.agreed_terms,
                        "accepted_amount": accepted_amount,
                    }
                updated = await self._sessions.update_session_status(
                    session_id, SessionStatus.ACCEPTED, **fields
                )
                await self._provision_conversation(updated)

        logger.info("Session accepted", extra={"session_id": mask_id(session_id)})
        new_values: dict[str, Any] = {"status": updated.status}
        if accepted_amount is not None:
            new_values["accepted_amount"] = accepted_amount
        await self._after_commit(
            updated,
            actor_id=user_id,
            audit=[("session.accept", {"status": session.status}, new_values)],
            event=NotificationEvent.SESSION_ACCEPTED,
            recipients=list(updated.participant_ids),
            context=context,
        )
        return updated

    async def decline(
        self,
        user_id: str,
        session_id: str,
        reason: str | None = None,
        context: AuditContext | None = None,
    ) -> ExchangeSession:
        """Dono da oferta recusa um pedido ainda PENDING."""
        with timed("session.decline", session_id):
            async with self._locks.hold(self._session_key(session_id)):
                session = await self._load(session_id)
                if user_id != session.responder_id:
                    raise ForbiddenError("Only the offer owner can decline sessions")
                if session.status != SessionStatus.PENDING:
                    raise InvalidStateError(
                        "Can only decline pending sessions",
                        current_status=session.status,
                        requested_status=SessionStatus.DECLINED,
                    )

                updated = await self._sessions.update_session_status(
                    session_id, SessionStatus.DECLINED, decline_reason=reason
                )

        logger.info("Session declined", extra={"session_id": mask_id(session_id)})
        await self._after_commit(
            updated,
            actor_id=user_id,
            audit=[
                ("session.decline", {"status": session.status}, {
                    "status": updated.status,
                    "reason": reason,
                })
            ],
            event=NotificationEvent.SESSION_DECLINED,
            recipients=list(updated.participant_ids),
            context=context,
        )
        return updated

    async def cancel(
        self,
        user_id: str,
        session_id: str,
        reason: str | None = None,
        context: AuditContext | None = None,
    ) -> ExchangeSession:
        """Qualquer participante cancela enquanto a tabela permitir."""
        with timed("session.cancel", session_id):
            async with self._locks.hold(self._session_key(session_id)):
                session = await self._load(session_id)
                self._require_participant(session, user_id, "cancel")
                ensure_transition(session.status, SessionStatus.CANCELLED, action="cancel")

                updated = await self._sessions.update_session_status(
                    session_id,
                    SessionStatus.CANCELLED,
                    cancelled_at=self._clock(),
                    cancelled_by_id=user_id,
                    cancellation_reason=reason,
                )

        logger.info(
            "Session cancelled",
            extra={"session_id": mask_id(session_id), "previous_status": str(session.status)},
        )
        await self._after_commit(
            updated,
            actor_id=user_id,
            audit=[
                ("session.cancel", {"status": session.status}, {
                    "status": updated.status,
                    "reason": reason,
                })
            ],
            event=NotificationEvent.SESSION_CANCELLED,
            recipients=list(updated.participant_ids),
            context=context,
        )
        return updated

    async def confirm(
        self,
        user_id: str,
        session_id: str,
        confirmation_type: ConfirmationType,
        notes: str | None = None,
        context: AuditContext | None = None,
    ) -> ExchangeSession:
        """Registra a declaração do participante e avalia o consenso.

        Ordem: grava a confirmação; ACCEPTED vira IN_PROGRESS na primeira
        confirmação; relê o conjunto completo; conclui se as duas partes
        declararam `received`.

        Uma declaração repetida devolve AlreadyExists, mas antes o status é
        reavaliado: se uma escrita anterior falhou depois de gravar a
        confirmação, a sessão avança agora em vez de ficar parada.
        """
        duplicate: AlreadyExistsError | None = None
        confirmation: ExchangeConfirmation | None = None
        with timed("session.confirm", session_id):
            async with self._locks.hold(self._session_key(session_id)):
                session = await self._load(session_id)
                self._require_participant(session, user_id, "confirm")
                if session.status not in CONFIRMABLE_STATES:
                    raise InvalidStateError(
                        f"Cannot confirm session in {session.status} state",
                        current_status=session.status,
                    )

                try:
                    confirmation = await self._consensus.record_confirmation(
                        session, user_id, confirmation_type, notes
                    )
                except AlreadyExistsError as e:
                    duplicate = e
                updated, decision = await self._advance(session)

        if duplicate is not None:
            if updated.status != session.status:
                logger.warning(
                    "Session status recovered from recorded confirmations",
                    extra={
                        "session_id": mask_id(session_id),
                        "previous_status": str(session.status),
                        "status": str(updated.status),
                    },
                )
                await self._after_commit(
                    updated,
                    actor_id=user_id,
                    audit=self._completion_audit(updated) if decision.complete else [],
                    event=self._confirm_event(decision),
                    recipients=list(updated.participant_ids),
                    context=context,
                )
            raise duplicate

        logger.info(
            "Session confirmation processed",
            extra={
                "session_id": mask_id(session_id),
                "type": str(confirmation_type),
                "status": str(updated.status),
                "completed": decision.complete,
            },
        )
        audit: list[AuditEntry] = [
            ("session.confirm", {"status": session.status}, {
                "status": updated.status,
                "confirmation_type": confirmation.type,
                "confirmation_id": confirmation.id,
            })
        ]
        if decision.complete:
            audit.extend(self._completion_audit(updated))
        await self._after_commit(
            updated,
            actor_id=user_id,
            audit=audit,
            event=self._confirm_event(decision),
            recipients=list(updated.participant_ids),
            context=context,
        )
        return updated

    async def _advance(
        self, session: ExchangeSession
    ) -> tuple[ExchangeSession, ConsensusDecision]:
        """Leva a sessão ao status implicado pelas confirmações gravadas."""
        hops: list[SessionStatus] = []
        status = session.status
        if status == SessionStatus.ACCEPTED:
            ensure_transition(status, SessionStatus.IN_PROGRESS)
            status = SessionStatus.IN_PROGRESS
            hops.append(status)

        decision = await self._consensus.evaluate(session, status)
        if decision.complete:
            hops.append(decision.next_status)

        updated = session
        for hop in hops:
            fields: dict[str, Any] = {}
            if hop == SessionStatus.COMPLETED:
                fields["completed_at"] = self._clock()
            updated = await self._sessions.update_session_status(session.id, hop, **fields)
        return updated, decision

    @staticmethod
    def _completion_audit(session: ExchangeSession) -> list[AuditEntry]:
        return [("session.complete", None, {"status": session.status})]

    @staticmethod
    def _confirm_event(decision: ConsensusDecision) -> NotificationEvent:
        if decision.complete:
            return NotificationEvent.SESSION_COMPLETED
        return NotificationEvent.CONFIRMATION_RECEIVED

    async def dispute(
        self,
        user_id: str,
        session_id: str,
        reason: str,
        context: AuditContext | None = None,
    ) -> ExchangeSession:
        """Participante reporta divergência durante a execução."""
        with timed("session.dispute", session_id):
            async with self._locks.hold(self._session_key(session_id)):
                session = await self._load(session_id)
                self._require_participant(session, user_id, "dispute")
                ensure_transition(session.status, SessionStatus.DISPUTED, action="dispute")

                updated = await self._sessions.update_session_status(
                    session_id,
                    SessionStatus.DISPUTED,
                    disputed_by_id=user_id,
                    dispute_reason=reason,
                )

        logger.warning("Session disputed", extra={"session_id": mask_id(session_id)})
        await self._after_commit(
            updated,
            actor_id=user_id,
            audit=[
                ("session.dispute", {"status": session.status}, {
                    "status": updated.status,
                    "reason": reason,
                })
            ],
            event=NotificationEvent.SESSION_DISPUTED,
            recipients=list(updated.participant_ids),
            context=context,
        )
        return updated

    # ------------------------------------------------------------------
    # Leituras
    # ------------------------------------------------------------------

    async def get(self, user_id: str, session_id: str) -> ExchangeSession:
        session = await self._load(session_id)
        self._require_participant(session, user_id, "view")
        return session

    async def get_details(self, user_id: str, session_id: str) -> SessionDetails:
        """Sessão + confirmações + resumo do consenso + conversa (se houver)."""
        session = await self.get(user_id, session_id)
        confirmations = await self._sessions.list_confirmations(session_id)
        conversation = await self._conversations.get_conversation(session_id)
        summary = await self._consensus.summary(session)
        return SessionDetails(
            session=session,
            confirmations=confirmations,
            consensus=summary,
            conversation_id=conversation.id if conversation else None,
        )

    async def list_sessions(self, user_id: str, filters: SessionFilters) -> SessionPage:
        if filters.limit > self._max_page_size:
            filters = filters.model_copy(update={"limit": self._max_page_size})
        items, total = await self._sessions.list_sessions(user_id, filters)
        return SessionPage(
            items=items,
            pagination=PaginationMeta.build(filters.page, filters.limit, total),
        )

    async def history(self, user_id: str, session_id: str) -> list[AuditEvent]:
        """Trilha de auditoria da sessão (mais antigo primeiro)."""
        await self.get(user_id, session_id)
        return await self._audit.history(session_id)

    # ------------------------------------------------------------------
    # Internos
    # ------------------------------------------------------------------

    @staticmethod
    def _session_key(session_id: str) -> str:
        return f"session:{session_id}"

    async def _load(self, session_id: str) -> ExchangeSession:
        session = await self._sessions.get_session_by_id(session_id)
        if session is None:
            raise NotFoundError("Session", session_id)
        return session

    @staticmethod
    def _require_participant(session: ExchangeSession, user_id: str, verb: str) -> None:
        if not session.is_participant(user_id):
            raise ForbiddenError(f"Only session participants can {verb} this session")

    async def _provision_conversation(self, session: ExchangeSession) -> None:
        # Status já persistido: falha aqui não reverte o aceite.
        try:
            conversation = await self._conversations.find_or_create_conversation(session)
        except Exception as e:
            logger.error(
                "Conversation provisioning failed after accept",
                extra={
                    "session_id": mask_id(session.id),
                    "error_type": type(e).__name__,
                    "error": str(e),
                },
            )
            return
        logger.info(
            "Conversation provisioned",
            extra={"session_id": mask_id(session.id), "conversation_id": mask_id(conversation.id)},
        )

    async def _after_commit(
        self,
        session: ExchangeSession,
        *,
        actor_id: str,
        audit: list[AuditEntry],
        event: NotificationEvent,
        recipients: list[str],
        context: AuditContext | None,
    ) -> None:
        await self._effects.dispatch(
            "audit", session.id, self._record_audit(session.id, actor_id, audit, context)
        )
        update = SessionUpdate(
            event=event,
            session_id=session.id,
            status=session.status,
            updated_by=actor_id,
            updated_at=session.updated_at,
        )
        await self._effects.dispatch(
            "notify",
            session.id,
            self._notifier.notify_participants(session.id, recipients, update),
        )

    async def _record_audit(
        self,
        session_id: str,
        actor_id: str,
        entries: list[AuditEntry],
        context: AuditContext | None,
    ) -> None:
        for action, old_values, new_values in entries:
            await self._audit.execute(
                entity_id=session_id,
                action=action,
                actor_id=actor_id,
                old_values=old_values,
                new_values=new_values,
                context=context,
            )
