"""Contrato de domínio para provisionamento de conversas."""

from __future__ import annotations

from typing import Protocol

from wontan_connect.domain.models import Conversation, ExchangeSession


class ConversationProvisioner(Protocol):
    """Porta de criação de conversas entre participantes.

    Deve ser idempotente: chamadas repetidas para a mesma sessão retornam
    a mesma conversa.
    """

    async def find_or_create_conversation(self, session: ExchangeSession) -> Conversation:
        """Retorna a conversa da sessão, criando-a se necessário."""

    async def get_conversation(self, session_id: str) -> Conversation | None:
        """Retorna a conversa da sessão, se existir."""
