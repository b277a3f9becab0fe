"""Protocolo de consulta de ofertas (subsistema externo)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from wontan_connect.domain.models import Offer


class OfferLookupProtocol(Protocol):
    """Consulta somente-leitura de ofertas."""

    async def get_offer(self, offer_id: str) -> Offer | None: ...
