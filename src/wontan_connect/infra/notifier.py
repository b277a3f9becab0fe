"""Notificação em tempo real dos participantes de uma sessão.

Implementações:
- InMemoryNotifier: acumula updates (testes)
- LoggingNotifier: apenas registra o evento (dev)
- HttpNotifier: publica no gateway de tempo real via httpx (produção)

Conforme regras de logging: nunca logar notas, termos acordados ou tokens.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from wontan_connect.domain.notifications import Notifier, SessionUpdate
from wontan_connect.observability.logging import get_logger, mask_id
from wontan_connect.observability.middleware import get_correlation_id

logger: logging.Logger = get_logger(__name__)


class NotifierError(Exception):
    """Falha ao entregar notificação (sem expor payload)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class DeliveredUpdate:
    session_id: str
    participant_ids: list[str]
    update: SessionUpdate


class InMemoryNotifier:
    """Guarda os updates entregues para inspeção."""

    def __init__(self) -> None:
        self.delivered: list[DeliveredUpdate] = []

    async def notify_participants(
        self, session_id: str, participant_ids: list[str], update: SessionUpdate
    ) -> None:
        self.delivered.append(DeliveredUpdate(session_id, list(participant_ids), update))

    def events_for(self, session_id: str) -> list[str]:
        return [str(d.update.event) for d in self.delivered if d.session_id == session_id]


class LoggingNotifier:
    """Notifier de desenvolvimento: registra o evento e segue."""

    async def notify_participants(
        self, session_id: str, participant_ids: list[str], update: SessionUpdate
    ) -> None:
        logger.info(
            "session_update",
            extra={
                "session_id": mask_id(session_id),
                "event": str(update.event),
                "status": str(update.status),
                "recipients": len(participant_ids),
            },
        )


class HttpNotifier:
    """Publica updates no gateway de tempo real.

    POST {base_url}/v1/sessions/{session_id}/events
    Body: {"participant_ids": [...], "update": {...}}
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout_seconds: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            headers=headers,
        )

    async def notify_participants(
        self, session_id: str, participant_ids: list[str], update: SessionUpdate
    ) -> None:
        payload: dict[str, Any] = {
            "participant_ids": list(participant_ids),
            "update": update.model_dump(mode="json"),
        }
        headers = {}
        correlation_id = get_correlation_id()
        if correlation_id:
            headers["X-Correlation-ID"] = correlation_id

        try:
            response = await self._client.post(
                f"/v1/sessions/{session_id}/events", json=payload, headers=headers
            )
        except httpx.HTTPError as e:
            raise NotifierError(f"Realtime gateway unreachable: {type(e).__name__}") from e

        if response.status_code >= 400:
            logger.warning(
                "Notificação rejeitada pelo gateway",
                extra={"session_id": mask_id(session_id), "status_code": response.status_code},
            )
            raise NotifierError("Realtime gateway rejected update", response.status_code)

    async def aclose(self) -> None:
        await self._client.aclose()


def create_notifier(settings: Any = None) -> Notifier:
    """Factory do notifier conforme settings.notifier_backend."""
    if settings is None:
        from wontan_connect.config.settings import get_settings

        settings = get_settings()

    backend = settings.notifier_backend.lower()
    if backend == "memory":
        return InMemoryNotifier()
    if backend == "log":
        return LoggingNotifier()
    if backend == "http":
        if not settings.realtime_gateway_url:
            raise ValueError("REALTIME_GATEWAY_URL é obrigatório quando notifier_backend=http")
        logger.info("Usando HttpNotifier")
        return HttpNotifier(
            base_url=settings.realtime_gateway_url,
            token=settings.realtime_gateway_token,
            timeout_seconds=settings.realtime_gateway_timeout_seconds,
        )

    raise ValueError(f"Backend de notificação não reconhecido: {backend}")
