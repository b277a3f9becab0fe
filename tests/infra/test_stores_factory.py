"""Testes da factory de stores por backend."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from wontan_connect.config.settings import Settings
from wontan_connect.infra.audit_store_memory import InMemoryAuditLogStore
from wontan_connect.infra.conversations import FirestoreConversationProvisioner
from wontan_connect.infra.firestore_audit import FirestoreAuditLogStore
from wontan_connect.infra.offers import FirestoreOfferLookup
from wontan_connect.infra.session_store_firestore import FirestoreSessionStore
from wontan_connect.infra.session_store_memory import InMemorySessionStore
from wontan_connect.infra.stores import create_stores


def test_memory_backend():
    bundle = create_stores(Settings(store_backend="memory"))

    assert isinstance(bundle.sessions, InMemorySessionStore)
    assert isinstance(bundle.audit, InMemoryAuditLogStore)


def test_firestore_backend_shares_injected_client():
    client = MagicMock()
    settings = Settings(store_backend="firestore", offers_collection="listings")

    bundle = create_stores(settings, firestore_client=client)

    assert isinstance(bundle.sessions, FirestoreSessionStore)
    assert isinstance(bundle.offers, FirestoreOfferLookup)
    assert isinstance(bundle.conversations, FirestoreConversationProvisioner)
    assert isinstance(bundle.audit, FirestoreAuditLogStore)
    assert bundle.offers._collection == "listings"
    assert bundle.audit._client is client


def test_unknown_backend_raises():
    with pytest.raises(ValueError, match="não reconhecido"):
        create_stores(Settings(store_backend="postgres"))
