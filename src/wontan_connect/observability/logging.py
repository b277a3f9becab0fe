"""Configuração de logging estruturado (JSON)."""

from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter

from wontan_connect.observability.middleware import get_actor_id, get_correlation_id


class CorrelationIdFilter(logging.Filter):
    """Insere correlation_id, ator (mascarado) e service no record de log.

    Importante: nunca adicionar payloads brutos, notas ou termos acordados nos logs.
    """

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self._service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        # Preserva correlation_id passado explicitamente via `extra`.
        existing = getattr(record, "correlation_id", None)
        record.correlation_id = existing if existing else get_correlation_id()
        record.actor_id = mask_id(get_actor_id()) or None
        record.service = self._service_name
        return True


def configure_logging(level: str, service_name: str, log_format: str = "json") -> None:
    """Configura logging JSON (ou texto em dev) com campos padrão do serviço."""

    if log_format == "text":
        formatter: logging.Formatter = logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s] %(message)s"
        )
    else:
        formatter = JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s %(correlation_id)s %(actor_id)s "
            "%(service)s",
            rename_fields={"levelname": "level", "name": "logger"},
        )

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter(service_name))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]


def get_logger(name: str) -> logging.Logger:
    """Retorna logger simples; o filtro injeta service/correlation_id."""

    return logging.getLogger(name)


def mask_id(value: str | None) -> str | None:
    """Trunca identificadores de usuário/sessão para logs (sem PII)."""
    if not value:
        return value
    return value[:8] + "..."


def log_side_effect_failure(
    logger: logging.Logger,
    component: str,
    session_id: str,
    error: BaseException,
) -> None:
    """Log observável de side effect que falhou após o commit.

    Args:
        logger: Logger instance
        component: Nome do side effect (ex: "audit", "notify", "conversation")
        session_id: Sessão afetada (truncada no log)
        error: Exceção capturada; apenas o tipo e a mensagem são registrados
    """
    logger.warning(
        f"Side effect failed: {component}",
        extra={
            "side_effect": component,
            "session_id": mask_id(session_id),
            "error_type": type(error).__name__,
            "error": str(error),
        },
    )
