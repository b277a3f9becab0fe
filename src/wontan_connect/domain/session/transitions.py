"""Tabela de transições da sessão de troca.

- TRANSITIONS[current_status] = destinos permitidos
- Estados terminais não aparecem como origem com destinos
- Validação pura: sem side effects
- AWAITING_CONFIRMATION não é obrigatório antes de COMPLETED
"""

from __future__ import annotations

from wontan_connect.domain.errors import InvalidStateError
from wontan_connect.domain.session.states import SessionStatus

TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.PENDING: frozenset({
        SessionStatus.ACCEPTED,
        SessionStatus.DECLINED,
        SessionStatus.CANCELLED,
    }),
    SessionStatus.ACCEPTED: frozenset({
        SessionStatus.IN_PROGRESS,
        SessionStatus.CANCELLED,
    }),
    SessionStatus.IN_PROGRESS: frozenset({
        SessionStatus.AWAITING_CONFIRMATION,
        SessionStatus.COMPLETED,
        SessionStatus.DISPUTED,
        SessionStatus.CANCELLED,
    }),
    SessionStatus.AWAITING_CONFIRMATION: frozenset({
        SessionStatus.COMPLETED,
        SessionStatus.CANCELLED,
    }),
    # Disputa só nasce de IN_PROGRESS e só sai para resolução
    SessionStatus.DISPUTED: frozenset({
        SessionStatus.COMPLETED,
        SessionStatus.CANCELLED,
    }),
    # === Estados Terminais: SEM transições de saída ===
    SessionStatus.DECLINED: frozenset(),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}


def allowed_transitions(current: SessionStatus) -> frozenset[SessionStatus]:
    """Retorna os destinos legais a partir de `current`."""
    return TRANSITIONS.get(SessionStatus(current), frozenset())


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    """Indica se `current -> target` existe na tabela. Nunca lança exceção."""
    try:
        return SessionStatus(target) in allowed_transitions(current)
    except ValueError:
        return False


def ensure_transition(
    current: SessionStatus, target: SessionStatus, action: str | None = None
) -> None:
    """Valida a transição ou lança InvalidStateError com o status atual.

    Args:
        current: Status persistido da sessão
        target: Status pretendido
        action: Verbo usado na mensagem (ex.: "accept"); padrão é o destino
    """
    if can_transition(current, target):
        return

    verb = action or f"move to {target}"
    raise InvalidStateError(
        f"Cannot {verb} session in {current} state",
        current_status=current,
        requested_status=target,
    )
