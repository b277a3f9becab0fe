"""Camada de infraestrutura: adapters para serviços externos.

Este módulo exporta as factories principais para criação de
componentes de infraestrutura:

- Stores: InMemorySessionStore, FirestoreSessionStore (via create_stores)
- Locks: InMemoryKeyedLock, RedisKeyedLock, create_keyed_lock
- Notificação: InMemoryNotifier, LoggingNotifier, HttpNotifier, create_notifier

Uso típico:
    from wontan_connect.infra import create_keyed_lock, create_stores

Infraestrutura não decide regra de negócio; domínio não conhece infraestrutura.
"""

from wontan_connect.infra.locks import (
    InMemoryKeyedLock,
    KeyedLock,
    LockAcquireError,
    RedisKeyedLock,
    create_keyed_lock,
)
from wontan_connect.infra.notifier import (
    HttpNotifier,
    InMemoryNotifier,
    LoggingNotifier,
    NotifierError,
    create_notifier,
)
from wontan_connect.infra.session_contract import (
    SessionConflictError,
    SessionStore,
    SessionStoreError,
)
from wontan_connect.infra.session_store_memory import InMemorySessionStore
from wontan_connect.infra.stores import StoreBundle, create_stores

__all__ = [
    # Stores
    "SessionStore",
    "SessionStoreError",
    "SessionConflictError",
    "InMemorySessionStore",
    "StoreBundle",
    "create_stores",
    # Locks
    "KeyedLock",
    "LockAcquireError",
    "InMemoryKeyedLock",
    "RedisKeyedLock",
    "create_keyed_lock",
    # Notificação
    "NotifierError",
    "InMemoryNotifier",
    "LoggingNotifier",
    "HttpNotifier",
    "create_notifier",
]
