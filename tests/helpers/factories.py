"""Dados de teste compartilhados (usuários, ofertas e sessões prontas)."""

from __future__ import annotations

from datetime import UTC, datetime

from wontan_connect.domain.enums import OfferStatus, OfferType
from wontan_connect.domain.models import ExchangeSession, Offer
from wontan_connect.domain.session.states import SessionStatus

ALICE = "user-alice-0001"
BOB = "user-bob-0002"
CAROL = "user-carol-0003"
OFFER_ID = "offer-0001"


def make_offer(
    offer_id: str = OFFER_ID,
    owner_id: str = BOB,
    status: OfferStatus = OfferStatus.ACTIVE,
    offer_type: OfferType = OfferType.FX,
) -> Offer:
    return Offer(id=offer_id, owner_id=owner_id, status=status, type=offer_type)


def make_session(
    session_id: str = "session-0001",
    status: SessionStatus = SessionStatus.PENDING,
    initiator_id: str = ALICE,
    responder_id: str = BOB,
    offer_id: str = OFFER_ID,
    updated_at: datetime | None = None,
) -> ExchangeSession:
    now = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    return ExchangeSession(
        id=session_id,
        offer_id=offer_id,
        initiator_id=initiator_id,
        responder_id=responder_id,
        type=OfferType.FX,
        status=status,
        agreed_terms={"proposed_amount": 100.0},
        created_at=now,
        updated_at=updated_at or now,
    )
