"""Geradores de identificadores."""

from __future__ import annotations

import uuid


def new_id() -> str:
    """Gera um identificador opaco (UUID4)."""

    return str(uuid.uuid4())


def active_take_key(user_id: str, offer_id: str) -> str:
    """Chave estável do par (iniciador, oferta).

    Usada tanto pelo lock de criação quanto pelo documento guarda do
    Firestore que impede duas sessões ativas para o mesmo par.
    """

    return f"{offer_id}:{user_id}"
