"""Fábrica da aplicação FastAPI."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from wontan_connect.api.routes import router
from wontan_connect.application.audit import RecordAuditEventUseCase
from wontan_connect.application.lifecycle import SessionLifecycleService
from wontan_connect.application.side_effects import SideEffectDispatcher
from wontan_connect.config.settings import Settings, get_settings
from wontan_connect.domain.errors import ERROR_SERVER, ERROR_VALIDATION, SessionError
from wontan_connect.domain.notifications import Notifier
from wontan_connect.infra.locks import KeyedLock, LockAcquireError, create_keyed_lock
from wontan_connect.infra.notifier import HttpNotifier, create_notifier
from wontan_connect.infra.session_contract import SessionStoreError
from wontan_connect.infra.stores import StoreBundle, create_stores
from wontan_connect.observability.logging import configure_logging, get_logger
from wontan_connect.observability.middleware import CorrelationIdMiddleware, get_correlation_id

logger = get_logger(__name__)


def _error_response(status_code: int, code: str, message: str, details: dict | None = None):
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {"code": code, "message": message, "details": details or {}},
        },
    )


async def _handle_session_error(request: Request, exc: SessionError) -> JSONResponse:
    logger.info(
        "session_request_rejected",
        extra={"code": exc.code, "path": request.url.path, "http_status": exc.http_status},
    )
    return _error_response(exc.http_status, exc.code, exc.message, exc.details)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(
        422, ERROR_VALIDATION, "Invalid request", {"errors": jsonable_encoder(exc.errors())}
    )


async def _handle_internal_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "session_request_failed",
        extra={
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "error": str(exc),
        },
    )
    return _error_response(
        500, ERROR_SERVER, "Internal server error", {"correlation_id": get_correlation_id()}
    )


def _validate_settings(settings: Settings) -> None:
    validation_errors = settings.validate_all()
    if validation_errors:
        error_msg = "; ".join(validation_errors)
        raise ValueError(f"Configuração inválida: {error_msg}")


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Shutdown: aguarda side effects pendentes e fecha o client do gateway."""
    yield
    side_effects: SideEffectDispatcher = app.state.side_effects
    logger.info("app_shutdown", extra={"pending_side_effects": side_effects.pending})
    await side_effects.drain()
    if isinstance(app.state.notifier, HttpNotifier):
        await app.state.notifier.aclose()


def create_app(
    settings: Settings | None = None,
    *,
    stores: StoreBundle | None = None,
    locks: KeyedLock | None = None,
    notifier: Notifier | None = None,
) -> FastAPI:
    """Cria a aplicação FastAPI.

    Os colaboradores podem ser injetados (testes); caso contrário são
    construídos a partir dos backends configurados.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.service_name, settings.log_format)
    _validate_settings(settings)

    app = FastAPI(title=settings.service_name, version=settings.version, lifespan=_lifespan)
    app.add_middleware(
        CorrelationIdMiddleware,
        correlation_header=settings.correlation_id_header,
        actor_header=settings.user_id_header,
    )
    app.include_router(router)

    app.add_exception_handler(SessionError, _handle_session_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(SessionStoreError, _handle_internal_error)
    app.add_exception_handler(LockAcquireError, _handle_internal_error)
    app.add_exception_handler(Exception, _handle_internal_error)

    stores = stores or create_stores(settings)
    app.state.settings = settings
    app.state.stores = stores
    app.state.notifier = notifier or create_notifier(settings)
    app.state.side_effects = SideEffectDispatcher(
        timeout_seconds=settings.side_effect_timeout_seconds,
        background=settings.side_effects_background,
    )
    app.state.lifecycle_service = SessionLifecycleService(
        sessions=stores.sessions,
        offers=stores.offers,
        conversations=stores.conversations,
        audit=RecordAuditEventUseCase(stores.audit, max_retries=settings.audit_max_retries),
        notifier=app.state.notifier,
        locks=locks or create_keyed_lock(settings),
        side_effects=app.state.side_effects,
        max_page_size=settings.max_page_size,
    )

    logger.info(
        "app_initialized",
        extra={
            "environment": settings.environment,
            "store_backend": settings.store_backend,
            "lock_backend": settings.lock_backend,
            "notifier_backend": settings.notifier_backend,
        },
    )
    return app


app = create_app()
