"""Contrato de notificação em tempo real para participantes da sessão."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from pydantic import BaseModel

from wontan_connect.domain.enums import NotificationEvent
from wontan_connect.domain.session.states import SessionStatus


class SessionUpdate(BaseModel):
    """Payload enviado aos participantes a cada transição."""

    event: NotificationEvent
    session_id: str
    status: SessionStatus
    updated_by: str
    updated_at: datetime


class Notifier(Protocol):
    """Porta de notificação (fire-and-forget do ponto de vista do serviço)."""

    async def notify_participants(
        self, session_id: str, participant_ids: list[str], update: SessionUpdate
    ) -> None:
        """Entrega o update a cada participante."""
