"""Admin API key authentication.

Admin endpoints are gated by an API key sent in the ``X-API-Key`` header.
Keys are validated against a comma-separated list from the environment; the
gate either lets the caller through as an admin or rejects the request before
it reaches the admin service.
"""

from __future__ import annotations

import hmac
import logging
from typing import Annotated

from fastapi import Header

from signup_intake.core.config import settings
from signup_intake.core.errors import AuthenticationAppError, AuthenticationRequiredAppError
from signup_intake.core.logging import fingerprint

logger = logging.getLogger(__name__)


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated API keys into a set.

    Examples:
        >>> parse_api_keys("key1, key2 , key3 ") == {"key1", "key2", "key3"}
        True
        >>> parse_api_keys(None)
        set()
    """
    if not keys_string:
        return set()

    return {key.strip() for key in keys_string.split(",") if key.strip()}


def _matches_any(provided_key: str, valid_keys: set[str]) -> bool:
    # Compare against every key so timing does not reveal which one matched.
    matched = False
    for key in valid_keys:
        if hmac.compare_digest(provided_key.encode(), key.encode()):
            matched = True
    return matched


def validate_api_key(provided_key: str) -> None:
    """Validate that the provided API key matches a configured admin key.

    Pure validation logic without FastAPI dependencies for easy testing.

    Raises:
        AuthenticationAppError: If the key is invalid, or authentication is
            required but no keys are configured.
    """
    if not settings.app.admin_api_key_required:
        return

    valid_keys = parse_api_keys(settings.app.admin_api_keys)

    if not valid_keys:
        logger.error(
            "auth.validation_failed",
            extra={"reason": "api_keys_not_configured"},
        )
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="Admin authentication is enabled but no valid keys are configured",
            details={
                "hint": "Set APP_ADMIN_API_KEYS or disable auth with APP_ADMIN_API_KEY_REQUIRED=false"
            },
        )

    if not _matches_any(provided_key, valid_keys):
        logger.warning(
            "auth.validation_failed",
            extra={
                "reason": "invalid_api_key",
                "api_key_hash": fingerprint(provided_key),
            },
        )
        raise AuthenticationAppError(
            code="invalid_api_key",
            message="Invalid or missing API key",
        )


async def require_admin(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency gating admin endpoints.

    Usage:
        @router.get("/signups", dependencies=[Depends(require_admin)])

    Raises:
        AuthenticationRequiredAppError: 401 when the header is missing.
        AuthenticationAppError: 403 when the key is not valid.
    """
    if not settings.app.admin_api_key_required:
        logger.debug("auth.skipped", extra={"reason": "auth_required_false"})
        return

    if not x_api_key:
        logger.warning("auth.missing_key", extra={"api_key_present": False})
        raise AuthenticationRequiredAppError(
            code="missing_api_key",
            message="Missing API key. Provide X-API-Key header.",
        )

    validate_api_key(x_api_key)
    logger.info("auth.success", extra={"api_key_hash": fingerprint(x_api_key)})
