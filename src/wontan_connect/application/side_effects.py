"""Execução best-effort de side effects pós-commit (auditoria, notificação).

Falhas e timeouts são registrados e descartados: o status já foi
persistido e não é revertido. Nenhum lock de sessão é mantido aqui.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable

from wontan_connect.observability.logging import get_logger, log_side_effect_failure

logger = get_logger(__name__)


class SideEffectDispatcher:
    """Executa side effects com tempo limite.

    Em modo `background`, cada side effect vira uma task e a resposta ao
    chamador não espera por ela. Tasks da mesma sessão rodam na ordem de
    despacho (auditoria de `create` antes da de `accept`). `drain()` aguarda
    as pendentes (shutdown e testes).
    """

    def __init__(self, timeout_seconds: float = 5.0, background: bool = False) -> None:
        self._timeout = timeout_seconds
        self._background = background
        self._tasks: set[asyncio.Task[None]] = set()
        self._tails: dict[str, asyncio.Task[None]] = {}

    @property
    def background(self) -> bool:
        return self._background

    async def dispatch(self, component: str, session_id: str, effect: Awaitable[object]) -> None:
        if not self._background:
            await self._run(component, session_id, effect)
            return

        previous = self._tails.get(session_id)
        task = asyncio.create_task(self._run_after(previous, component, session_id, effect))
        self._tasks.add(task)
        self._tails[session_id] = task
        task.add_done_callback(lambda done: self._forget(session_id, done))

    async def _run_after(
        self,
        previous: asyncio.Task[None] | None,
        component: str,
        session_id: str,
        effect: Awaitable[object],
    ) -> None:
        if previous is not None and not previous.done():
            await asyncio.wait({previous})
        await self._run(component, session_id, effect)

    async def _run(self, component: str, session_id: str, effect: Awaitable[object]) -> None:
        try:
            await asyncio.wait_for(effect, timeout=self._timeout)
        except Exception as e:
            log_side_effect_failure(logger, component, session_id, e)

    def _forget(self, session_id: str, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if self._tails.get(session_id) is task:
            del self._tails[session_id]

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._tasks)
