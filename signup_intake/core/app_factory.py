from __future__ import annotations

"""Application factory for the FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers) so tests can build isolated instances with their own store and
rate limiter.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from signup_intake.adapters.rate_limit.base import AbstractRateLimiter
from signup_intake.adapters.store.base import AbstractSignupStore
from signup_intake.adapters.store.factory import create_signup_store
from signup_intake.api.routes import health_router, signups_router
from signup_intake.api.routes.health import SERVICE_NAME, SERVICE_VERSION
from signup_intake.core.config import settings
from signup_intake.core.exception_handlers import setup_exception_handlers
from signup_intake.core.logging import configure_logging
from signup_intake.core.middleware import request_id_middleware, security_headers_middleware
from signup_intake.core.openapi import apply_openapi_customizations
from signup_intake.core.rate_limit import build_signup_rate_limiter
from signup_intake.services.admin_service import SignupAdminService
from signup_intake.services.signup_service import SignupService

logger = logging.getLogger(__name__)


def create_app(
    *,
    store: AbstractSignupStore | None = None,
    rate_limiter: AbstractRateLimiter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        store: Store to use instead of the one selected by ``STORE_BACKEND``.
        rate_limiter: Limiter for ``POST /signup``; built from settings if omitted.

    Returns:
        Configured app. The store is opened on startup and closed on shutdown.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    signup_store = store if store is not None else create_signup_store(settings.store)
    signup_service = SignupService(signup_store, precheck=settings.app.signup_precheck_enabled)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await signup_store.open()
        logger.info(
            "app.started",
            extra={"app_env": settings.app_env, "store": type(signup_store).__name__},
        )
        try:
            yield
        finally:
            await signup_store.close()
            logger.info("app.stopped")

    app = FastAPI(
        title=SERVICE_NAME,
        description=(
            "Public signup intake for the Sisterhood Initiative plus admin "
            "record management. POST /signup is rate limited per client "
            "address; /signups operations require X-API-Key."
        ),
        version=SERVICE_VERSION,
        lifespan=lifespan,
    )

    app.state.signup_store = signup_store
    if rate_limiter is None:
        rate_limiter = build_signup_rate_limiter(settings.app)
    app.state.signup_rate_limiter = rate_limiter
    app.state.signup_service = signup_service
    app.state.admin_service = SignupAdminService(signup_store, signup_service)

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key", settings.log.request_id_header],
    )
    app.middleware("http")(request_id_middleware)
    # Outermost, so 500s rendered by the request-id middleware get the headers too
    app.middleware("http")(security_headers_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(signups_router)
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags, exemptions)
    apply_openapi_customizations(app)

    return app
