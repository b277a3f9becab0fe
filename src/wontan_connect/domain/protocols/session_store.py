"""Protocolos de domínio para persistência de sessões e confirmações."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from wontan_connect.domain.models import (
        ExchangeConfirmation,
        ExchangeSession,
        SessionFilters,
    )
    from wontan_connect.domain.session.states import ConfirmationType, SessionStatus


class SessionStoreProtocol(ABC):
    """Contrato mínimo assíncrono para sessões de troca."""

    @abstractmethod
    async def create_session(self, session: ExchangeSession) -> ExchangeSession: ...

    @abstractmethod
    async def get_session_by_id(self, session_id: str) -> ExchangeSession | None: ...

    @abstractmethod
    async def update_session_status(
        self, session_id: str, status: SessionStatus, **fields: Any
    ) -> ExchangeSession: ...

    @abstractmethod
    async def update_agreed_terms(
        self, session_id: str, terms: dict[str, Any]
    ) -> ExchangeSession: ...

    @abstractmethod
    async def find_active_session_for_user_and_offer(
        self, user_id: str, offer_id: str
    ) -> ExchangeSession | None: ...

    @abstractmethod
    async def list_sessions(
        self, user_id: str, filters: SessionFilters
    ) -> tuple[list[ExchangeSession], int]: ...


class ConfirmationStoreProtocol(ABC):
    """Contrato mínimo assíncrono para confirmações."""

    @abstractmethod
    async def create_confirmation(
        self,
        session_id: str,
        user_id: str,
        confirmation_type: ConfirmationType,
        notes: str | None = None,
    ) -> ExchangeConfirmation: ...

    @abstractmethod
    async def find_confirmation(
        self, session_id: str, user_id: str, confirmation_type: ConfirmationType
    ) -> ExchangeConfirmation | None: ...

    @abstractmethod
    async def list_confirmations(self, session_id: str) -> list[ExchangeConfirmation]: ...
