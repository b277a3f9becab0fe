"""Implementação de SessionStore usando Firestore (produção).

Schema:
    /exchange_sessions/{session_id}
    /exchange_confirmations/{session_id}:{user_id}:{type}
    /exchange_active_takes/{offer_id}:{user_id}   (guarda de unicidade)

A guarda aponta para a última sessão criada pelo par (iniciador, oferta).
A criação lê guarda + sessão referenciada na mesma transação: se a
sessão referenciada ainda não é terminal, a criação é rejeitada. Sessões
terminais liberam o par sem precisar apagar a guarda.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

import anyio
from google.api_core.exceptions import AlreadyExists, NotFound
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter, Or

from wontan_connect.domain.enums import ParticipantRole
from wontan_connect.domain.models import (
    ExchangeConfirmation,
    ExchangeSession,
    SessionFilters,
)
from wontan_connect.domain.session.states import (
    NON_TERMINAL_STATES,
    TERMINAL_STATES,
    ConfirmationType,
    SessionStatus,
)
from wontan_connect.infra.session_contract import (
    SessionConflictError,
    SessionStore,
    SessionStoreError,
)
from wontan_connect.observability.logging import get_logger, mask_id
from wontan_connect.utils.ids import active_take_key

logger: logging.Logger = get_logger(__name__)

_DATETIME_FIELDS = ("created_at", "updated_at", "completed_at", "cancelled_at")


def _to_document(session: ExchangeSession) -> dict[str, Any]:
    """Serializa mantendo datetimes nativos (ordenação por timestamp)."""
    payload = session.model_dump(mode="json")
    for field in _DATETIME_FIELDS:
        payload[field] = getattr(session, field)
    return payload


def _confirmation_doc_id(
    session_id: str, user_id: str, confirmation_type: ConfirmationType
) -> str:
    return f"{session_id}:{user_id}:{confirmation_type}"


def _store_error(action: str, session_id: str | None, error: Exception) -> SessionStoreError:
    """Loga a falha do backend e a converte em SessionStoreError."""
    logger.error(
        f"Firestore failed to {action}",
        extra={
            "session_id": mask_id(session_id),
            "error_type": type(error).__name__,
            "error": str(error),
        },
    )
    return SessionStoreError(f"Firestore failed to {action}: {error}")


class FirestoreSessionStore(SessionStore):
    """Armazenamento de sessões e confirmações em Firestore.

    O client é síncrono: cada método async delega a leitura/escrita para
    uma worker thread (`anyio.to_thread.run_sync`), liberando o event loop
    para sessões diferentes. A exclusão mútua por sessão fica a cargo do
    KeyedLock do serviço, e a unicidade é garantida por transações/create()
    no próprio Firestore.
    """

    def __init__(
        self,
        client: firestore.Client,
        sessions_collection: str = "exchange_sessions",
        confirmations_collection: str = "exchange_confirmations",
        active_takes_collection: str = "exchange_active_takes",
    ) -> None:
        self._client = client
        self._sessions = sessions_collection
        self._confirmations = confirmations_collection
        self._active_takes = active_takes_collection

    def _session_ref(self, session_id: str) -> firestore.DocumentReference:
        return self._client.collection(self._sessions).document(session_id)

    # ------------------------------------------------------------------
    # Sessões
    # ------------------------------------------------------------------

    async def create_session(self, session: ExchangeSession) -> ExchangeSession:
        return await anyio.to_thread.run_sync(self._create_session, session)

    async def get_session_by_id(self, session_id: str) -> ExchangeSession | None:
        return await anyio.to_thread.run_sync(self._get_session, session_id)

    async def update_session_status(
        self, session_id: str, status: SessionStatus, **fields: Any
    ) -> ExchangeSession:
        return await anyio.to_thread.run_sync(
            self._update, session_id, {"status": str(status), **fields}
        )

    async def update_agreed_terms(
        self, session_id: str, terms: dict[str, Any]
    ) -> ExchangeSession:
        return await anyio.to_thread.run_sync(
            self._update, session_id, {"agreed_terms": dict(terms)}
        )

    async def find_active_session_for_user_and_offer(
        self, user_id: str, offer_id: str
    ) -> ExchangeSession | None:
        return await anyio.to_thread.run_sync(self._find_active, user_id, offer_id)

    async def list_sessions(
        self, user_id: str, filters: SessionFilters
    ) -> tuple[list[ExchangeSession], int]:
        return await anyio.to_thread.run_sync(self._list_sessions, user_id, filters)

    # ------------------------------------------------------------------
    # Confirmações
    # ------------------------------------------------------------------

    async def create_confirmation(
        self,
        session_id: str,
        user_id: str,
        confirmation_type: ConfirmationType,
        notes: str | None = None,
    ) -> ExchangeConfirmation:
        return await anyio.to_thread.run_sync(
            self._create_confirmation, session_id, user_id, confirmation_type, notes
        )

    async def find_confirmation(
        self, session_id: str, user_id: str, confirmation_type: ConfirmationType
    ) -> ExchangeConfirmation | None:
        return await anyio.to_thread.run_sync(
            self._find_confirmation, session_id, user_id, confirmation_type
        )

    async def list_confirmations(self, session_id: str) -> list[ExchangeConfirmation]:
        return await anyio.to_thread.run_sync(self._list_confirmations, session_id)

    # ------------------------------------------------------------------
    # Operações síncronas (executadas fora do event loop)
    # ------------------------------------------------------------------

    def _create_session(self, session: ExchangeSession) -> ExchangeSession:
        session_ref = self._session_ref(session.id)
        guard_ref = self._client.collection(self._active_takes).document(
            active_take_key(session.initiator_id, session.offer_id)
        )

        @firestore.transactional
        def _txn(transaction: firestore.Transaction) -> None:
            guard = guard_ref.get(transaction=transaction)
            if guard.exists:
                existing_id = (guard.to_dict() or {}).get("session_id")
                if existing_id:
                    existing = self._session_ref(existing_id).get(transaction=transaction)
                    status = (existing.to_dict() or {}).get("status") if existing.exists else None
                    if status is not None and status not in TERMINAL_STATES:
                        raise SessionConflictError(
                            "Active session already exists for user and offer",
                            existing_id=existing_id,
                        )

            transaction.create(session_ref, _to_document(session))
            transaction.set(
                guard_ref,
                {
                    "session_id": session.id,
                    "offer_id": session.offer_id,
                    "initiator_id": session.initiator_id,
                    "updated_at": session.created_at,
                },
            )

        try:
            _txn(self._client.transaction())
        except SessionConflictError:
            raise
        except AlreadyExists as e:
            raise SessionConflictError("Session id already in use", existing_id=session.id) from e
        except Exception as e:
            raise _store_error("create session", session.id, e) from e

        logger.debug("Session created (Firestore)", extra={"session_id": mask_id(session.id)})
        return session

    def _get_session(self, session_id: str) -> ExchangeSession | None:
        try:
            doc = self._session_ref(session_id).get()
        except Exception as e:
            raise _store_error("load session", session_id, e) from e

        if not doc.exists:
            return None
        return ExchangeSession.model_validate(doc.to_dict() or {})

    def _find_active(self, user_id: str, offer_id: str) -> ExchangeSession | None:
        query = (
            self._client.collection(self._sessions)
            .where(filter=FieldFilter("offer_id", "==", offer_id))
            .where(filter=FieldFilter("initiator_id", "==", user_id))
            .where(filter=FieldFilter("status", "in", sorted(NON_TERMINAL_STATES)))
            .limit(1)
        )
        try:
            docs = list(query.stream())
        except Exception as e:
            raise _store_error("find active session", None, e) from e

        if not docs:
            return None
        return ExchangeSession.model_validate(docs[0].to_dict() or {})

    def _list_sessions(
        self, user_id: str, filters: SessionFilters
    ) -> tuple[list[ExchangeSession], int]:
        query = self._client.collection(self._sessions)
        if filters.role == ParticipantRole.INITIATOR:
            query = query.where(filter=FieldFilter("initiator_id", "==", user_id))
        elif filters.role == ParticipantRole.RESPONDER:
            query = query.where(filter=FieldFilter("responder_id", "==", user_id))
        else:
            query = query.where(
                filter=Or(
                    [
                        FieldFilter("initiator_id", "==", user_id),
                        FieldFilter("responder_id", "==", user_id),
                    ]
                )
            )
        if filters.status is not None:
            query = query.where(filter=FieldFilter("status", "==", str(filters.status)))

        page_query = (
            query.order_by("updated_at", direction=firestore.Query.DESCENDING)
            .offset(filters.offset)
            .limit(filters.limit)
        )
        try:
            count_result = query.count().get()
            docs = list(page_query.stream())
        except Exception as e:
            raise _store_error("list sessions", None, e) from e

        total = int(count_result[0][0].value) if count_result else 0
        items = [ExchangeSession.model_validate(doc.to_dict() or {}) for doc in docs]
        return items, total

    def _create_confirmation(
        self,
        session_id: str,
        user_id: str,
        confirmation_type: ConfirmationType,
        notes: str | None,
    ) -> ExchangeConfirmation:
        doc_id = _confirmation_doc_id(session_id, user_id, confirmation_type)
        confirmation = ExchangeConfirmation(
            id=doc_id,
            session_id=session_id,
            user_id=user_id,
            type=confirmation_type,
            notes=notes,
            confirmed_at=datetime.now(tz=UTC),
        )
        payload = confirmation.model_dump(mode="json")
        payload["confirmed_at"] = confirmation.confirmed_at

        try:
            self._client.collection(self._confirmations).document(doc_id).create(payload)
        except AlreadyExists as e:
            raise SessionConflictError("Confirmation already recorded", existing_id=doc_id) from e
        except Exception as e:
            raise _store_error("record confirmation", session_id, e) from e

        return confirmation

    def _find_confirmation(
        self, session_id: str, user_id: str, confirmation_type: ConfirmationType
    ) -> ExchangeConfirmation | None:
        doc_id = _confirmation_doc_id(session_id, user_id, confirmation_type)
        try:
            doc = self._client.collection(self._confirmations).document(doc_id).get()
        except Exception as e:
            raise _store_error("load confirmation", session_id, e) from e

        if not doc.exists:
            return None
        return ExchangeConfirmation.model_validate(doc.to_dict() or {})

    def _list_confirmations(self, session_id: str) -> list[ExchangeConfirmation]:
        query = (
            self._client.collection(self._confirmations)
            .where(filter=FieldFilter("session_id", "==", session_id))
            .order_by("confirmed_at", direction=firestore.Query.ASCENDING)
        )
        try:
            docs = list(query.stream())
        except Exception as e:
            raise _store_error("list confirmations", session_id, e) from e

        return [ExchangeConfirmation.model_validate(doc.to_dict() or {}) for doc in docs]

    def _update(self, session_id: str, changes: dict[str, Any]) -> ExchangeSession:
        doc_ref = self._session_ref(session_id)
        changes["updated_at"] = datetime.now(tz=UTC)

        try:
            doc_ref.update(changes)
            doc = doc_ref.get()
        except NotFound as e:
            raise SessionStoreError(f"Session {mask_id(session_id)} not found") from e
        except Exception as e:
            raise _store_error("update session", session_id, e) from e

        logger.debug(
            "Session updated (Firestore)",
            extra={"session_id": mask_id(session_id), "status": changes.get("status")},
        )
        return ExchangeSession.model_validate(doc.to_dict() or {})
