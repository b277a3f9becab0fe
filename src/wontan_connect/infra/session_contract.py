"""Contrato de persistência de sessões de troca e confirmações.

Separado para manter SRP e permitir reuso entre implementações
(memória para dev/testes, Firestore para produção).
"""

from __future__ import annotations

import logging

from wontan_connect.domain.protocols.session_store import (
    ConfirmationStoreProtocol,
    SessionStoreProtocol,
)
from wontan_connect.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class SessionStoreError(Exception):
    """Erro ao persistir ou recuperar sessão."""

    pass


class SessionConflictError(SessionStoreError):
    """Violação de unicidade detectada no próprio armazenamento.

    Levantada quando já existe sessão ativa para o par (iniciador, oferta)
    ou quando a confirmação (sessão, usuário, tipo) já foi registrada.
    """

    def __init__(self, message: str, existing_id: str | None = None) -> None:
        super().__init__(message)
        self.existing_id = existing_id


class SessionStore(SessionStoreProtocol, ConfirmationStoreProtocol):
    """Contrato abstrato para armazenamento de sessões e confirmações.

    Responsabilidades:
    - Garantir no máximo uma sessão não-terminal por (iniciador, oferta)
    - Garantir unicidade de (sessão, usuário, tipo) nas confirmações
    - Atualizar `updated_at` a cada mudança de status ou de termos
    - Nunca apagar sessões (terminais ficam para histórico)
    """
