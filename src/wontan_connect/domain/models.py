"""Modelos de domínio (contratos principais)."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from wontan_connect.domain.enums import OfferStatus, OfferType, ParticipantRole
from wontan_connect.domain.session.states import (
    TERMINAL_STATES,
    ConfirmationType,
    SessionStatus,
)


class Offer(BaseModel):
    """Visão mínima da oferta exigida pelo ciclo de vida (somente leitura)."""

    id: str
    owner_id: str
    status: OfferStatus
    type: OfferType


class ExchangeSession(BaseModel):
    """Registro de uma troca negociada entre dois participantes."""

    id: str
    offer_id: str
    initiator_id: str
    responder_id: str
    type: OfferType
    status: SessionStatus = SessionStatus.PENDING
    agreed_terms: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    # Bookkeeping de ciclo de vida
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by_id: str | None = None
    cancellation_reason: str | None = None
    decline_reason: str | None = None
    disputed_by_id: str | None = None
    dispute_reason: str | None = None

    @property
    def agreed_amount(self) -> float | None:
        """Valor acordado: aceito pelo dono da oferta, senão o proposto."""
        for key in ("accepted_amount", "proposed_amount"):
            value = self.agreed_terms.get(key)
            if value is not None:
                return float(value)
        return None

    @property
    def participant_ids(self) -> tuple[str, str]:
        return (self.initiator_id, self.responder_id)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def is_participant(self, user_id: str) -> bool:
        """True se `user_id` é iniciador ou respondente."""
        return user_id in self.participant_ids

    def counterpart_of(self, user_id: str) -> str:
        """Retorna o outro participante."""
        return self.responder_id if user_id == self.initiator_id else self.initiator_id


class ExchangeConfirmation(BaseModel):
    """Declaração idempotente de um participante (fato, não contador)."""

    id: str
    session_id: str
    user_id: str
    type: ConfirmationType
    notes: str | None = None
    confirmed_at: datetime


class Conversation(BaseModel):
    """Conversa provisionada no aceite (uma por sessão)."""

    id: str
    session_id: str
    participant_ids: list[str]
    created_at: datetime


class SessionFilters(BaseModel):
    """Filtros de listagem (papel, status e paginação)."""

    role: ParticipantRole = ParticipantRole.ALL
    status: SessionStatus | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class PaginationMeta(BaseModel):
    """Metadados de paginação devolvidos com a página."""

    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> PaginationMeta:
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class SessionPage(BaseModel):
    """Página de sessões."""

    items: list[ExchangeSession] = Field(default_factory=list)
    pagination: PaginationMeta
