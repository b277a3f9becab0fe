"""Configurações da aplicação via variáveis de ambiente.

Todas as configurações são carregadas de env vars (ou .env em dev).
Nunca hardcode secrets ou valores sensíveis.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_STORE_BACKENDS = {"memory", "firestore"}
VALID_LOCK_BACKENDS = {"memory", "redis"}
VALID_NOTIFIER_BACKENDS = {"memory", "log", "http"}


class Settings(BaseSettings):
    """Configurações lidas do ambiente."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
    )

    # Aplicação
    service_name: str = "wontan_connect"
    version: str = "0.1.0"
    environment: str = "development"
    log_level: str = "INFO"
    log_format: str = "json"  # json | text

    # Identidade injetada pelo gateway (autenticação fora do escopo)
    user_id_header: str = "X-User-Id"
    correlation_id_header: str = "X-Correlation-ID"

    # Persistência de sessões, confirmações, ofertas, conversas e auditoria
    store_backend: str = "memory"  # memory | firestore
    firestore_project_id: str | None = None
    firestore_database_id: str = "(default)"
    sessions_collection: str = "exchange_sessions"
    confirmations_collection: str = "exchange_confirmations"
    active_takes_collection: str = "exchange_active_takes"
    offers_collection: str = "offers"
    conversations_collection: str = "conversations"
    audit_logs_collection: str = "audit_logs"

    # Exclusão mútua por sessão
    lock_backend: str = "memory"  # memory | redis
    redis_url: str | None = None
    lock_key_prefix: str = "wc:lock"
    lock_timeout_seconds: float = 30.0  # TTL do lock distribuído
    lock_blocking_timeout_seconds: float = 10.0  # Espera máxima para adquirir

    # Notificação em tempo real
    notifier_backend: str = "log"  # memory | log | http
    realtime_gateway_url: str | None = None
    realtime_gateway_token: str | None = None
    realtime_gateway_timeout_seconds: float = 5.0

    # Side effects pós-commit (auditoria, notificação)
    side_effect_timeout_seconds: float = 5.0
    side_effects_background: bool = True  # resposta não espera auditoria/notificação
    audit_max_retries: int = 3

    # Paginação
    default_page_size: int = 20
    max_page_size: int = 100

    def validate_store_config(self) -> list[str]:
        """Valida backend de persistência por ambiente.

        Em staging/prod, memory é proibido (instâncias stateless).
        Retorna lista de erros (vazia = tudo OK).
        """
        errors: list[str] = []
        backend = self.store_backend.lower()

        if backend not in VALID_STORE_BACKENDS:
            errors.append(
                f"STORE_BACKEND '{backend}' inválido. Valores válidos: {VALID_STORE_BACKENDS}"
            )

        if backend == "memory" and (self.is_staging or self.is_production):
            errors.append(
                "STORE_BACKEND=memory é proibido em staging/production. "
                "Use 'firestore' para instâncias stateless."
            )

        return errors

    def validate_lock_config(self) -> list[str]:
        """Valida backend de lock por sessão.

        Com mais de uma instância, lock em memória não serializa operações
        concorrentes sobre a mesma sessão; staging/prod exigem redis.
        """
        errors: list[str] = []
        backend = self.lock_backend.lower()

        if backend not in VALID_LOCK_BACKENDS:
            errors.append(
                f"LOCK_BACKEND '{backend}' inválido. Valores válidos: {VALID_LOCK_BACKENDS}"
            )

        if backend == "memory" and (self.is_staging or self.is_production):
            errors.append(
                "LOCK_BACKEND=memory é proibido em staging/production. "
                "Configure 'redis' para exclusão mútua entre instâncias."
            )

        if backend == "redis" and not self.redis_url:
            errors.append("LOCK_BACKEND=redis requer REDIS_URL configurado")

        if self.lock_timeout_seconds <= 0:
            errors.append("LOCK_TIMEOUT_SECONDS deve ser > 0")
        if self.lock_blocking_timeout_seconds <= 0:
            errors.append("LOCK_BLOCKING_TIMEOUT_SECONDS deve ser > 0")

        return errors

    def validate_notifier_config(self) -> list[str]:
        """Valida backend de notificação em tempo real."""
        errors: list[str] = []
        backend = self.notifier_backend.lower()

        if backend not in VALID_NOTIFIER_BACKENDS:
            errors.append(
                f"NOTIFIER_BACKEND '{backend}' inválido. "
                f"Valores válidos: {VALID_NOTIFIER_BACKENDS}"
            )

        if backend == "http":
            if not self.realtime_gateway_url:
                errors.append("NOTIFIER_BACKEND=http requer REALTIME_GATEWAY_URL configurado")
            elif (self.is_staging or self.is_production) and self.realtime_gateway_url.startswith(
                "http://"
            ):
                errors.append("REALTIME_GATEWAY_URL deve usar https em staging/production")

        if backend == "memory" and (self.is_staging or self.is_production):
            errors.append("NOTIFIER_BACKEND=memory é proibido em staging/production")

        return errors

    def validate_pagination(self) -> list[str]:
        """Valida limites de paginação."""
        errors: list[str] = []
        if self.default_page_size < 1:
            errors.append("DEFAULT_PAGE_SIZE deve ser >= 1")
        if self.max_page_size < self.default_page_size:
            errors.append("MAX_PAGE_SIZE deve ser >= DEFAULT_PAGE_SIZE")
        return errors

    def validate_all(self) -> list[str]:
        """Agrega todas as validações (usado no bootstrap)."""
        errors: list[str] = []
        errors.extend(self.validate_store_config())
        errors.extend(self.validate_lock_config())
        errors.extend(self.validate_notifier_config())
        errors.extend(self.validate_pagination())
        return errors

    @property
    def is_production(self) -> bool:
        """Retorna True se ambiente é produção."""
        return self.environment.lower() in ("production", "prod")

    @property
    def is_staging(self) -> bool:
        """Retorna True se ambiente é staging."""
        return self.environment.lower() in ("staging", "stage")

    @property
    def is_development(self) -> bool:
        """Retorna True se ambiente é desenvolvimento."""
        return self.environment.lower() in ("development", "dev", "local")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Retorna uma instância cacheada de Settings.

    A cache garante que mesmo múltiplas injeções não criam novos objetos.
    """
    return Settings()
