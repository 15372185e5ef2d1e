"""Shared constructors for store-level domain errors."""

from __future__ import annotations

from signup_intake.core.errors import DuplicateEmailAppError, NotFoundAppError, StoreAppError


def duplicate_email() -> DuplicateEmailAppError:
    return DuplicateEmailAppError(
        code="email_already_registered",
        message="This email is already signed up for the Sisterhood Initiative.",
    )


def signup_not_found(signup_id: str) -> NotFoundAppError:
    return NotFoundAppError(
        code="signup_not_found",
        message="Signup not found",
        details={"signup_id": signup_id},
    )


def store_failure(operation: str) -> StoreAppError:
    return StoreAppError(
        code="store_unavailable",
        message="We couldn't process your request. Please try again.",
        details={"operation": operation},
    )
