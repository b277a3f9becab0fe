"""Corpos de requisição da API de sessões (validação de entrada)."""

from __future__ import annotations

from pydantic import BaseModel, Field

from wontan_connect.domain.session.states import ConfirmationType

MAX_TEXT_LENGTH = 500


class CreateSessionRequest(BaseModel):
    offer_id: str = Field(min_length=1)
    proposed_amount: float | None = Field(default=None, gt=0)
    message: str | None = Field(default=None, max_length=MAX_TEXT_LENGTH)


class AcceptSessionRequest(BaseModel):
    accepted_amount: float | None = Field(default=None, gt=0)


class ReasonRequest(BaseModel):
    """Motivo opcional (recusa e cancelamento)."""

    reason: str | None = Field(default=None, max_length=MAX_TEXT_LENGTH)


class DisputeSessionRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=MAX_TEXT_LENGTH)


class ConfirmSessionRequest(BaseModel):
    confirmation_type: ConfirmationType
    notes: str | None = Field(default=None, max_length=MAX_TEXT_LENGTH)
