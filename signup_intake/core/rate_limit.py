"""Rate limiting dependency for the public signup route.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency function only.
- Explicit lifecycle: the limiter is built by the app factory and stored on
  ``app.state``; it lives exactly as long as the application instance.
- Fail fast: the check runs before the request body is read, so a throttled
  client never reaches validation or the store.

Client address policy:
- By default the socket peer address is used.
- With ``APP_TRUST_PROXY_HEADERS=true`` the first ``X-Forwarded-For`` hop is
  used instead (only enable this behind a proxy that overwrites the header).
- When no address can be determined all such requests share the
  ``ip:unknown`` bucket.
"""

from __future__ import annotations

import logging

from fastapi import Request

from signup_intake.adapters.rate_limit.base import AbstractRateLimiter
from signup_intake.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from signup_intake.core.config import AppSettings, settings
from signup_intake.core.errors import RateLimitAppError
from signup_intake.core.logging import fingerprint

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


def build_signup_rate_limiter(app_settings: AppSettings | None = None) -> AbstractRateLimiter:
    """Create the limiter guarding ``POST /signup`` from configuration."""

    cfg = app_settings or settings.app
    return InMemorySlidingWindowRateLimiter(
        limit=cfg.signup_rate_limit_requests,
        window_seconds=cfg.signup_rate_limit_window_seconds,
    )


def resolve_client_address(request: Request, *, trust_proxy_headers: bool = False) -> str:
    """Return the address used to key rate limits for this request."""

    if trust_proxy_headers:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop

    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


def get_signup_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the running application."""

    limiter = getattr(request.app.state, "signup_rate_limiter", None)
    if limiter is None:
        limiter = build_signup_rate_limiter()
        request.app.state.signup_rate_limiter = limiter
    return limiter


async def enforce_signup_rate_limit(request: Request) -> None:
    """FastAPI dependency enforcing the per-address signup attempt budget.

    Every call consumes one attempt, whatever the outcome of the signup.

    Raises:
        RateLimitAppError: When the address exhausted its budget (HTTP 429).
    """

    if not settings.app.rate_limit_enabled:
        return

    limiter = get_signup_rate_limiter(request)
    address = resolve_client_address(
        request, trust_proxy_headers=settings.app.trust_proxy_headers
    )
    key = f"ip:{address}"

    result = limiter.consume(key)
    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "key_hash": fingerprint(key),
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": fingerprint(key),
            "client_known": address != UNKNOWN_CLIENT,
            "limit": result.limit,
            "window_s": settings.app.signup_rate_limit_window_seconds,
            "retry_after_s": retry_after,
        },
    )

    raise RateLimitAppError(
        code="too_many_signup_attempts",
        message="Too many signup attempts from this IP, please try again later.",
        details={
            "retry_after": retry_after,
            "limit": result.limit,
            "remaining": result.remaining,
            "reset_at": result.reset_at,
        },
    )
