"""Armazenamento de trilha de auditoria em Firestore com encadeamento por hash.

Implementação de AuditLogStore que persiste eventos com integridade:
- Append-only: eventos nunca são modificados ou deletados
- Encadeamento: cada evento referencia hash do anterior (SHA256)
- Transacional: usa Firestore transactions para evitar race conditions
- Client síncrono executado em worker thread (anyio), fora do event loop
- Concorrência: tolerante a conflitos (retry no app layer)
"""

from __future__ import annotations

import logging

import anyio
from google.cloud import firestore

from wontan_connect.domain.audit import AuditEvent
from wontan_connect.observability.logging import get_logger, mask_id

logger: logging.Logger = get_logger(__name__)


class FirestoreAuditLogStore:
    """Armazenamento de auditoria em Firestore com trilha encadeada.

    Schema:
        /audit_logs/{entity_id}/events/{event_id}
        ├── event_id: str (UUID)
        ├── action: str (session.create | session.accept | ...)
        ├── actor_id: str | None
        ├── entity_type: str ("session")
        ├── entity_id: str
        ├── old_values / new_values: dict | None
        ├── context: {ip_address, user_agent, correlation_id}
        ├── timestamp: datetime
        ├── prev_hash: str | None (hash do evento anterior)
        └── hash: str (SHA256 do evento)

    Integridade:
        hash = SHA256(canonical_json(event_sem_hash) + prev_hash)
        Append condicional valida: latest.hash == expected_prev_hash
    """

    def __init__(self, client: firestore.Client, collection: str = "audit_logs") -> None:
        self._client = client
        self._collection = collection

    def _events_collection(self, entity_id: str) -> firestore.CollectionReference:
        return self._client.collection(self._collection).document(entity_id).collection("events")

    async def get_latest_event(self, entity_id: str) -> AuditEvent | None:
        return await anyio.to_thread.run_sync(self._get_latest_event, entity_id)

    async def list_events(self, entity_id: str, limit: int = 500) -> list[AuditEvent]:
        """Lista eventos da entidade (mais antigo primeiro)."""
        return await anyio.to_thread.run_sync(self._list_events, entity_id, limit)

    async def append_event(self, event: AuditEvent, expected_prev_hash: str | None) -> bool:
        """Append condicional de evento com validação de cadeia.

        Retorna False se prev_hash não corresponde ao último evento.
        """
        return await anyio.to_thread.run_sync(self._append_event, event, expected_prev_hash)

    def _get_latest_event(self, entity_id: str) -> AuditEvent | None:
        query = (
            self._events_collection(entity_id)
            .order_by("timestamp", direction=firestore.Query.DESCENDING)
            .limit(1)
        )

        docs = list(query.stream())
        if not docs:
            return None

        doc_dict = docs[0].to_dict()
        if not doc_dict:
            return None

        try:
            return AuditEvent(**doc_dict)
        except ValueError as e:
            logger.error(
                "Falha ao desserializar evento de auditoria",
                extra={"entity_id": mask_id(entity_id), "error": str(e)},
            )
            return None

    def _list_events(self, entity_id: str, limit: int) -> list[AuditEvent]:
        query = (
            self._events_collection(entity_id)
            .order_by("timestamp", direction=firestore.Query.ASCENDING)
            .limit(limit)
        )

        events: list[AuditEvent] = []
        for doc in query.stream():
            doc_dict = doc.to_dict()
            if not doc_dict:
                continue
            try:
                events.append(AuditEvent(**doc_dict))
            except ValueError:
                logger.warning(
                    "Evento malformado ignorado",
                    extra={"entity_id": mask_id(entity_id), "doc_id": doc.id},
                )
        return events

    def _append_event(self, event: AuditEvent, expected_prev_hash: str | None) -> bool:
        events_col = self._events_collection(event.entity_id)
        doc_ref = events_col.document(event.event_id)

        @firestore.transactional
        def _txn(tx: firestore.Transaction) -> bool:
            latest_hash = self._get_latest_hash_in_txn(tx, events_col)
            if latest_hash != expected_prev_hash:
                logger.debug(
                    "Conflito de cadeia",
                    extra={
                        "entity_id": mask_id(event.entity_id),
                        "expected": expected_prev_hash[:8] if expected_prev_hash else None,
                        "actual": latest_hash[:8] if latest_hash else None,
                    },
                )
                return False

            tx.set(doc_ref, event.model_dump())
            return True

        return _txn(self._client.transaction())

    def _get_latest_hash_in_txn(
        self, tx: firestore.Transaction, events_col: firestore.CollectionReference
    ) -> str | None:
        query = events_col.order_by("timestamp", direction=firestore.Query.DESCENDING).limit(1)
        docs = list(query.stream(transaction=tx))
        if not docs:
            return None
        doc_dict = docs[0].to_dict()
        return doc_dict.get("hash") if doc_dict else None
