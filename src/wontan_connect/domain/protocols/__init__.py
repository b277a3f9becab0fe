"""Re-exports dos Protocolos de domínio para uso por Application."""

from __future__ import annotations

from wontan_connect.domain.protocols.offers import OfferLookupProtocol
from wontan_connect.domain.protocols.session_store import (
    ConfirmationStoreProtocol,
    SessionStoreProtocol,
)

__all__ = [
    "OfferLookupProtocol",
    "SessionStoreProtocol",
    "ConfirmationStoreProtocol",
]
