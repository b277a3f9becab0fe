"""Latência por operação do ciclo de vida."""

from __future__ import annotations

import contextlib
import time
from collections.abc import Generator

from wontan_connect.observability.logging import get_logger, mask_id

logger = get_logger(__name__)


@contextlib.contextmanager
def timed(operation: str, session_id: str | None = None) -> Generator[None, None, None]:
    """Mede e loga a duração de uma operação (inclui espera pelo lock).

    Campos: component, elapsed_ms, session_id (mascarado, quando houver)
    e outcome ("ok" ou o nome da exceção que encerrou a operação).
    """
    start = time.perf_counter()
    outcome = "ok"
    try:
        yield
    except Exception as e:
        outcome = type(e).__name__
        raise
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "component_latency",
            extra={
                "component": operation,
                "session_id": mask_id(session_id),
                "outcome": outcome,
                "elapsed_ms": round(elapsed_ms, 2),
            },
        )
