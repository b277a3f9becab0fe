from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from wontan_connect.api.app import create_app
from wontan_connect.application.audit import RecordAuditEventUseCase
from wontan_connect.application.lifecycle import SessionLifecycleService
from wontan_connect.config.settings import Settings, get_settings
from wontan_connect.infra.audit_store_memory import InMemoryAuditLogStore
from wontan_connect.infra.conversations import InMemoryConversationProvisioner
from wontan_connect.infra.locks import InMemoryKeyedLock
from wontan_connect.infra.notifier import InMemoryNotifier
from wontan_connect.infra.offers import InMemoryOfferLookup
from wontan_connect.infra.session_store_memory import InMemorySessionStore
from wontan_connect.infra.stores import StoreBundle

from tests.helpers.factories import make_offer


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        environment="development",
        log_format="text",
        store_backend="memory",
        lock_backend="memory",
        notifier_backend="memory",
        side_effects_background=False,
    )


@pytest.fixture()
def stores() -> StoreBundle:
    return StoreBundle(
        sessions=InMemorySessionStore(),
        offers=InMemoryOfferLookup([make_offer()]),
        conversations=InMemoryConversationProvisioner(),
        audit=InMemoryAuditLogStore(),
    )


@pytest.fixture()
def notifier() -> InMemoryNotifier:
    return InMemoryNotifier()


@pytest.fixture()
def service(stores: StoreBundle, notifier: InMemoryNotifier) -> SessionLifecycleService:
    return SessionLifecycleService(
        sessions=stores.sessions,
        offers=stores.offers,
        conversations=stores.conversations,
        audit=RecordAuditEventUseCase(stores.audit),
        notifier=notifier,
        locks=InMemoryKeyedLock(),
    )


@pytest.fixture()
def client(settings: Settings, stores: StoreBundle, notifier: InMemoryNotifier):
    get_settings.cache_clear()
    app = create_app(settings, stores=stores, notifier=notifier)
    with TestClient(app) as test_client:
        yield test_client
