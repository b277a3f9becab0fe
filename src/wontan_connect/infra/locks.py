"""Exclusão mútua por chave (sessão ou par iniciador/oferta).

Mutações sobre a mesma sessão são serializadas; sessões diferentes nunca
se bloqueiam. Duas implementações:

- InMemoryKeyedLock: asyncio.Lock por chave, com contagem de referências
  para liberar a entrada quando ninguém mais espera (dev/testes, 1 instância)
- RedisKeyedLock: lock distribuído do redis-py com TTL (produção)
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

from redis.exceptions import LockError

from wontan_connect.observability.logging import get_logger, mask_id

logger: logging.Logger = get_logger(__name__)


class LockAcquireError(Exception):
    """Não foi possível adquirir o lock dentro do tempo limite."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Could not acquire lock for {mask_id(key)}")
        self.key = key


class KeyedLock(ABC):
    """Contrato de lock por chave."""

    @abstractmethod
    def hold(self, key: str) -> Any:
        """Async context manager que mantém o lock da chave."""
        ...


@dataclass(slots=True)
class _LockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    refs: int = 0


class InMemoryKeyedLock(KeyedLock):
    """Registro de asyncio.Lock por chave.

    ⚠️ Não serializa entre instâncias; em staging/prod use RedisKeyedLock.
    """

    def __init__(self, blocking_timeout_seconds: float | None = None) -> None:
        self._entries: dict[str, _LockEntry] = {}
        self._blocking_timeout = blocking_timeout_seconds

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _LockEntry()
        entry.refs += 1

        try:
            try:
                await asyncio.wait_for(entry.lock.acquire(), timeout=self._blocking_timeout)
            except TimeoutError as e:
                raise LockAcquireError(key) from e

            try:
                yield
            finally:
                entry.lock.release()
        finally:
            entry.refs -= 1
            if entry.refs == 0 and self._entries.get(key) is entry:
                del self._entries[key]

    def active_keys(self) -> int:
        """Quantidade de chaves com lock retido ou aguardado."""
        return len(self._entries)


class RedisKeyedLock(KeyedLock):
    """Lock distribuído usando redis.asyncio.

    Estrutura Redis:
        KEY: {prefix}:{key}
        VALUE: token aleatório do holder (gerenciado pelo redis-py)
        EXPIRE: timeout_seconds (libera locks de instâncias que morreram)
    """

    def __init__(
        self,
        redis_client: Any,
        key_prefix: str = "wc:lock",
        timeout_seconds: float = 30.0,
        blocking_timeout_seconds: float = 10.0,
    ) -> None:
        self._redis = redis_client
        self._prefix = key_prefix
        self._timeout = timeout_seconds
        self._blocking_timeout = blocking_timeout_seconds

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._redis.lock(
            f"{self._prefix}:{key}",
            timeout=self._timeout,
            blocking_timeout=self._blocking_timeout,
        )
        acquired = await lock.acquire()
        if not acquired:
            logger.warning("Lock acquire timeout (Redis)", extra={"lock_key": mask_id(key)})
            raise LockAcquireError(key)

        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError as e:
                # TTL expirou antes do fim da operação
                logger.warning(
                    "Lock already released (Redis)",
                    extra={"lock_key": mask_id(key), "error": str(e)},
                )


def create_keyed_lock(settings: Any = None) -> KeyedLock:
    """Factory do lock conforme settings.lock_backend (memory | redis)."""
    if settings is None:
        from wontan_connect.config.settings import get_settings

        settings = get_settings()

    backend = settings.lock_backend.lower()
    if backend == "memory":
        logger.info("Usando InMemoryKeyedLock (apenas dev/testes)")
        return InMemoryKeyedLock(blocking_timeout_seconds=settings.lock_blocking_timeout_seconds)

    if backend == "redis":
        if not settings.redis_url:
            raise ValueError("REDIS_URL é obrigatório quando lock_backend=redis")

        from redis import asyncio as redis_asyncio

        logger.info(
            "Usando RedisKeyedLock",
            extra={"lock_timeout_seconds": settings.lock_timeout_seconds},
        )
        return RedisKeyedLock(
            redis_client=redis_asyncio.from_url(settings.redis_url),
            key_prefix=settings.lock_key_prefix,
            timeout_seconds=settings.lock_timeout_seconds,
            blocking_timeout_seconds=settings.lock_blocking_timeout_seconds,
        )

    raise ValueError(f"Backend de lock não reconhecido: {backend}")
