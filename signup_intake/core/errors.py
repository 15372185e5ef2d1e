"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class FieldViolation(TypedDict):
    """A single rejected input field."""

    field: str
    message: str


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    fields: list[FieldViolation]
    missing_fields: list[str]
    unknown_fields: list[str]
    signup_id: str
    http_status: int
    retry_after: int
    limit: int
    remaining: int
    reset_at: int
    operation: str
    request_id: str
    max_bytes: int
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class AuthenticationRequiredAppError(AuthenticationAppError):
    """Raised when a protected endpoint is called without a credential."""


class RateLimitAppError(AppError):
    """Raised when a client exceeds its attempt budget."""


class DuplicateEmailAppError(AppError):
    """Raised when a signup for an already registered email is rejected."""


class NotFoundAppError(AppError):
    """Raised when a signup id does not exist."""


class StoreAppError(AppError):
    """Raised when the persistence backend fails for any other reason."""


class PayloadTooLargeAppError(AppError):
    """Raised when a request body exceeds the configured size limit."""
