"""Enums de domínio para ofertas, papéis e eventos de notificação."""

from __future__ import annotations

from enum import StrEnum


class OfferType(StrEnum):
    """Categoria da oferta (copiada para a sessão na criação)."""

    FX = "fx"
    SHIPPING = "shipping"


class OfferStatus(StrEnum):
    """Status de listagem da oferta; apenas ACTIVE aceita novas sessões."""

    ACTIVE = "active"
    PAUSED = "paused"
    EXPIRED = "expired"
    COMPLETED = "completed"


class ParticipantRole(StrEnum):
    """Filtro de papel na listagem de sessões."""

    INITIATOR = "initiator"
    RESPONDER = "responder"
    ALL = "all"


class NotificationEvent(StrEnum):
    """Eventos em tempo real enviados aos participantes."""

    SESSION_REQUEST = "session_request"
    SESSION_ACCEPTED = "session_accepted"
    SESSION_DECLINED = "session_declined"
    SESSION_CANCELLED = "session_cancelled"
    SESSION_DISPUTED = "session_disputed"
    CONFIRMATION_RECEIVED = "confirmation_received"
    SESSION_COMPLETED = "session_completed"
