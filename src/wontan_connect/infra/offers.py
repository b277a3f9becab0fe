"""Consulta de ofertas (somente leitura).

O ciclo de vida de ofertas pertence a outro subsistema; aqui só lemos
dono, status e tipo.
"""

from __future__ import annotations

import logging

import anyio
from google.cloud import firestore

from wontan_connect.domain.models import Offer
from wontan_connect.observability.logging import get_logger, mask_id

logger: logging.Logger = get_logger(__name__)


class InMemoryOfferLookup:
    """Catálogo de ofertas em memória (dev/testes)."""

    def __init__(self, offers: list[Offer] | None = None) -> None:
        self._offers: dict[str, Offer] = {o.id: o for o in offers or []}

    def add_offer(self, offer: Offer) -> None:
        self._offers[offer.id] = offer

    async def get_offer(self, offer_id: str) -> Offer | None:
        return self._offers.get(offer_id)


class FirestoreOfferLookup:
    """Lê ofertas de /offers/{offer_id}.

    Aceita documentos com `owner_id` ou `user_id` (nome legado do dono).
    """

    def __init__(self, client: firestore.Client, collection: str = "offers") -> None:
        self._client = client
        self._collection = collection

    async def get_offer(self, offer_id: str) -> Offer | None:
        return await anyio.to_thread.run_sync(self._get_offer, offer_id)

    def _get_offer(self, offer_id: str) -> Offer | None:
        doc = self._client.collection(self._collection).document(offer_id).get()
        if not doc.exists:
            return None

        data = doc.to_dict() or {}
        owner_id = data.get("owner_id") or data.get("user_id")
        try:
            return Offer(
                id=offer_id,
                owner_id=owner_id,
                status=data.get("status"),
                type=data.get("type"),
            )
        except ValueError as e:
            logger.error(
                "Oferta malformada ignorada",
                extra={"offer_id": mask_id(offer_id), "error": str(e)},
            )
            return None
