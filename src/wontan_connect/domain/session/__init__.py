"""Máquina de estados da sessão de troca.

Exporta:
- SessionStatus: 8 estados canônicos
- ConfirmationType: sent | received
- can_transition / ensure_transition: validadores puros
"""

from wontan_connect.domain.session.states import (
    COMPLETION_CONFIRMATION,
    CONFIRMABLE_STATES,
    INITIAL_STATUS,
    NON_TERMINAL_STATES,
    TERMINAL_STATES,
    ConfirmationType,
    SessionStatus,
)
from wontan_connect.domain.session.transitions import (
    TRANSITIONS,
    allowed_transitions,
    can_transition,
    ensure_transition,
)

__all__ = [
    "SessionStatus",
    "ConfirmationType",
    "INITIAL_STATUS",
    "TERMINAL_STATES",
    "NON_TERMINAL_STATES",
    "CONFIRMABLE_STATES",
    "COMPLETION_CONFIRMATION",
    "TRANSITIONS",
    "allowed_transitions",
    "can_transition",
    "ensure_transition",
]
