"""Provisionamento idempotente de conversas por sessão."""

from __future__ import annotations

from datetime import UTC, datetime

import anyio
from google.api_core.exceptions import AlreadyExists
from google.cloud import firestore

from wontan_connect.domain.models import Conversation, ExchangeSession
from wontan_connect.utils.ids import new_id


class InMemoryConversationProvisioner:
    """Conversas em memória, uma por sessão."""

    def __init__(self) -> None:
        self._by_session: dict[str, Conversation] = {}

    async def find_or_create_conversation(self, session: ExchangeSession) -> Conversation:
        existing = self._by_session.get(session.id)
        if existing is not None:
            return existing

        conversation = Conversation(
            id=new_id(),
            session_id=session.id,
            participant_ids=list(session.participant_ids),
            created_at=datetime.now(tz=UTC),
        )
        self._by_session[session.id] = conversation
        return conversation

    async def get_conversation(self, session_id: str) -> Conversation | None:
        return self._by_session.get(session_id)


class FirestoreConversationProvisioner:
    """Conversas em Firestore.

    Coleção escolhida: conversations/{session_id}
    O id do documento é o da sessão, então a criação é naturalmente
    idempotente: a transação lê antes de criar e um AlreadyExists
    concorrente devolve o documento já gravado. As chamadas ao client
    síncrono rodam em worker thread.
    """

    def __init__(self, client: firestore.Client, collection: str = "conversations") -> None:
        self._client = client
        self._collection = collection

    def _ref(self, session_id: str) -> firestore.DocumentReference:
        return self._client.collection(self._collection).document(session_id)

    async def find_or_create_conversation(self, session: ExchangeSession) -> Conversation:
        return await anyio.to_thread.run_sync(self._find_or_create, session)

    async def get_conversation(self, session_id: str) -> Conversation | None:
        return await anyio.to_thread.run_sync(self._get, session_id)

    def _find_or_create(self, session: ExchangeSession) -> Conversation:
        doc_ref = self._ref(session.id)

        @firestore.transactional
        def _txn(transaction: firestore.Transaction) -> Conversation:
            snapshot = doc_ref.get(transaction=transaction)
            if snapshot.exists:
                return Conversation(**(snapshot.to_dict() or {}))

            conversation = Conversation(
                id=new_id(),
                session_id=session.id,
                participant_ids=list(session.participant_ids),
                created_at=datetime.now(tz=UTC),
            )
            transaction.create(doc_ref, conversation.model_dump())
            return conversation

        try:
            return _txn(self._client.transaction())
        except AlreadyExists:
            existing = self._get(session.id)
            if existing is None:
                raise
            return existing

    def _get(self, session_id: str) -> Conversation | None:
        snapshot = self._ref(session_id).get()
        if not snapshot.exists:
            return None
        return Conversation(**(snapshot.to_dict() or {}))
