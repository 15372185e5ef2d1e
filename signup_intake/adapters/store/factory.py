"""Factory pattern for creating signup store instances."""

from signup_intake.adapters.store.base import AbstractSignupStore
from signup_intake.adapters.store.in_memory import InMemorySignupStore
from signup_intake.adapters.store.postgres import PostgresSignupStore
from signup_intake.core.config import StoreSettings, settings
from signup_intake.core.errors import ValidationAppError


def create_signup_store(store_settings: StoreSettings | None = None) -> AbstractSignupStore:
    """Instantiate the signup store selected by configuration.

    Reads ``STORE_*`` settings (Pydantic Settings) unless explicit settings
    are passed, and validates backend-specific requirements.

    Returns:
        AbstractSignupStore: Configured, not yet opened, store.

    Raises:
        ValidationAppError: If backend-specific requirements are not met.
    """
    cfg = store_settings or settings.store
    backend = cfg.backend.lower()

    if backend == "postgres":
        if not cfg.database_url:
            raise ValidationAppError(
                code="store_missing_database_url",
                message="Postgres store requires STORE_DATABASE_URL environment variable",
            )
        return PostgresSignupStore(
            dsn=cfg.database_url,
            table=cfg.table_name,
            min_size=cfg.pool_min_size,
            max_size=cfg.pool_max_size,
            command_timeout=cfg.command_timeout_seconds,
            create_schema=cfg.create_schema,
        )

    if backend == "memory":
        return InMemorySignupStore()

    raise ValidationAppError(
        code="store_unknown_backend",
        message=f"Unknown store backend: '{backend}'. Supported backends: postgres, memory",
    )
