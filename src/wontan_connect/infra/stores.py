"""Factories dos stores conforme settings.store_backend.

- "memory": stores em memória (dev/testes)
- "firestore": stores Firestore compartilhando um único client (produção)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from wontan_connect.domain.audit import AuditLogStore
from wontan_connect.domain.conversations import ConversationProvisioner
from wontan_connect.domain.protocols.offers import OfferLookupProtocol
from wontan_connect.infra.audit_store_memory import InMemoryAuditLogStore
from wontan_connect.infra.conversations import InMemoryConversationProvisioner
from wontan_connect.infra.offers import InMemoryOfferLookup
from wontan_connect.infra.session_contract import SessionStore
from wontan_connect.infra.session_store_memory import InMemorySessionStore
from wontan_connect.observability.logging import get_logger

if TYPE_CHECKING:
    from wontan_connect.config.settings import Settings

logger: logging.Logger = get_logger(__name__)


@dataclass(slots=True)
class StoreBundle:
    """Conjunto de stores usados pelo serviço de ciclo de vida."""

    sessions: SessionStore
    offers: OfferLookupProtocol
    conversations: ConversationProvisioner
    audit: AuditLogStore


def create_stores(settings: Settings | None = None, firestore_client: Any = None) -> StoreBundle:
    """Cria os stores do backend configurado.

    Args:
        settings: Configurações da aplicação. Se None, usa get_settings()
        firestore_client: Client já construído (testes); senão um novo é criado

    Raises:
        ValueError: Se backend não reconhecido
    """
    if settings is None:
        from wontan_connect.config.settings import get_settings

        settings = get_settings()

    backend = settings.store_backend.lower()
    if backend == "memory":
        logger.info("Usando stores em memória (apenas dev/testes)")
        return StoreBundle(
            sessions=InMemorySessionStore(),
            offers=InMemoryOfferLookup(),
            conversations=InMemoryConversationProvisioner(),
            audit=InMemoryAuditLogStore(),
        )

    if backend == "firestore":
        return _create_firestore_stores(settings, firestore_client)

    raise ValueError(f"Backend de persistência não reconhecido: {backend}")


def _create_firestore_stores(settings: Settings, client: Any) -> StoreBundle:
    from wontan_connect.infra.conversations import FirestoreConversationProvisioner
    from wontan_connect.infra.firestore_audit import FirestoreAuditLogStore
    from wontan_connect.infra.offers import FirestoreOfferLookup
    from wontan_connect.infra.session_store_firestore import FirestoreSessionStore

    if client is None:
        from google.cloud import firestore

        client = firestore.Client(
            project=settings.firestore_project_id,
            database=settings.firestore_database_id,
        )

    logger.info(
        "Usando stores Firestore",
        extra={"project_id": settings.firestore_project_id},
    )
    return StoreBundle(
        sessions=FirestoreSessionStore(
            client,
            sessions_collection=settings.sessions_collection,
            confirmations_collection=settings.confirmations_collection,
            active_takes_collection=settings.active_takes_collection,
        ),
        offers=FirestoreOfferLookup(client, collection=settings.offers_collection),
        conversations=FirestoreConversationProvisioner(
            client, collection=settings.conversations_collection
        ),
        audit=FirestoreAuditLogStore(client, collection=settings.audit_logs_collection),
    )
