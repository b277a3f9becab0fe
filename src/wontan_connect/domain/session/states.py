"""Estados canônicos de uma sessão de troca e tipos de confirmação.

- Toda sessão nasce em PENDING
- DECLINED, COMPLETED e CANCELLED são terminais (sem transições de saída)
- Sessões nunca são apagadas; estados terminais ficam para histórico
"""

from __future__ import annotations

from enum import StrEnum


class SessionStatus(StrEnum):
    """8 estados canônicos de uma sessão de troca."""

    # === Negociação ===
    PENDING = "pending"
    """Oferta tomada, aguardando resposta do dono da oferta."""

    ACCEPTED = "accepted"
    """Dono da oferta aceitou; conversa provisionada."""

    # === Execução ===
    IN_PROGRESS = "in_progress"
    """Primeira confirmação registrada; troca em andamento."""

    AWAITING_CONFIRMATION = "awaiting_confirmation"
    """Execução encerrada, aguardando aceite final das partes."""

    DISPUTED = "disputed"
    """Divergência reportada durante a execução."""

    # === Terminais ===
    DECLINED = "declined"
    """Dono da oferta recusou o pedido."""

    COMPLETED = "completed"
    """Ambas as partes confirmaram o recebimento."""

    CANCELLED = "cancelled"
    """Cancelada por um dos participantes."""


class ConfirmationType(StrEnum):
    """Tipos de confirmação emitidos por cada participante."""

    SENT = "sent"
    """Declaração: enviei a minha parte."""

    RECEIVED = "received"
    """Declaração: recebi a parte da outra pessoa."""


INITIAL_STATUS = SessionStatus.PENDING

TERMINAL_STATES = frozenset({
    SessionStatus.DECLINED,
    SessionStatus.COMPLETED,
    SessionStatus.CANCELLED,
})
"""Estados que encerram a sessão (sem transições posteriores)."""

NON_TERMINAL_STATES = frozenset({
    s for s in SessionStatus if s not in TERMINAL_STATES
})
"""Estados em que a sessão ainda está ativa."""

CONFIRMABLE_STATES = frozenset({
    SessionStatus.ACCEPTED,
    SessionStatus.IN_PROGRESS,
})
"""Estados em que confirmações são aceitas."""

COMPLETION_CONFIRMATION = ConfirmationType.RECEIVED
"""Tipo de confirmação que, vindo das duas partes, conclui a sessão."""
