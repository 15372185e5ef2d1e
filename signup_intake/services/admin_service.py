"""Admin record operations for already-authenticated operators.

Manual entries get only a required-field presence check (no length or format
rules), but they go through the same duplicate-email handling as public
signups.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from signup_intake.adapters.store.base import AbstractSignupStore
from signup_intake.core.errors import ValidationAppError
from signup_intake.core.logging import fingerprint
from signup_intake.schemas.signup import (
    DEFAULT_STATUS,
    ENTRY_SOURCE_MANUAL,
    IMMUTABLE_FIELDS,
    WRITABLE_FIELDS,
    NewSignup,
    SignupRecord,
)
from signup_intake.services.signup_service import SignupService

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("full_name", "email", "phone")
_BOOLEAN_FIELDS = frozenset({"newsletter_opt_in"})
_NON_NULL_FIELDS = frozenset(REQUIRED_FIELDS) | {"status", "entry_source", "newsletter_opt_in"}


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _or_none(value: Any) -> Any:
    return None if _blank(value) else value


def check_column_types(changes: Mapping[str, Any]) -> None:
    """Reject values the store cannot hold or that would blank a required column."""

    problems = []
    for field, value in changes.items():
        if field in _BOOLEAN_FIELDS:
            if not isinstance(value, bool):
                problems.append({"field": field, "message": f"{field} must be true or false"})
        elif field in REQUIRED_FIELDS and _blank(value):
            problems.append({"field": field, "message": f"{field} is required"})
        elif value is None:
            if field in _NON_NULL_FIELDS:
                problems.append({"field": field, "message": f"{field} cannot be null"})
        elif not isinstance(value, str):
            problems.append({"field": field, "message": f"{field} must be text"})
    if problems:
        raise ValidationAppError(
            code="invalid_field_types",
            message="One or more fields have an invalid value",
            details={"fields": problems},
        )


class SignupAdminService:
    """CRUD over signup records for admin callers."""

    def __init__(self, store: AbstractSignupStore, guard: SignupService) -> None:
        self._store = store
        self._guard = guard

    async def list_signups(self) -> list[SignupRecord]:
        return await self._store.list_all()

    async def get_signup(self, signup_id: str) -> SignupRecord:
        return await self._store.get_by_id(signup_id)

    async def create_signup(self, payload: Mapping[str, Any]) -> SignupRecord:
        """Create a manual entry.

        Defaults: ``status=pending``, ``entry_source=manual`` and
        ``newsletter_opt_in=True`` unless explicitly false. Empty optional text
        is stored as null.

        Raises:
            ValidationAppError: A required field is missing or a value has the wrong type.
            DuplicateEmailAppError: The email is already registered.
        """
        missing = [field for field in REQUIRED_FIELDS if _blank(payload.get(field))]
        if missing:
            raise ValidationAppError(
                code="missing_required_fields",
                message="Full name, email, and phone are required.",
                details={"missing_fields": missing},
            )

        fields = {k: v for k, v in payload.items() if k in WRITABLE_FIELDS}
        check_column_types({k: v for k, v in fields.items() if v is not None})

        signup = NewSignup(
            full_name=fields["full_name"],
            email=fields["email"].strip().lower(),
            phone=fields["phone"],
            referral_source=_or_none(fields.get("referral_source")),
            goals=_or_none(fields.get("goals")),
            newsletter_opt_in=fields.get("newsletter_opt_in") is not False,
            status=_or_none(fields.get("status")) or DEFAULT_STATUS,
            entry_source=_or_none(fields.get("entry_source")) or ENTRY_SOURCE_MANUAL,
            notes=_or_none(fields.get("notes")),
        )
        # Manual entries skip the lookup; the insert-time constraint still applies.
        record = await self._guard.insert_unique(signup, precheck=False)
        logger.info(
            "signup.created",
            extra={
                "signup_id": record.id,
                "email_hash": fingerprint(record.email),
                "entry_source": record.entry_source,
            },
        )
        return record

    async def update_signup(self, signup_id: str, changes: Mapping[str, Any]) -> SignupRecord:
        """Merge ``changes`` into a record; ``id`` and ``created_at`` are ignored.

        Raises:
            ValidationAppError: Unknown fields or values of the wrong type.
            NotFoundAppError: The id does not exist.
            DuplicateEmailAppError: The new email belongs to another record.
        """
        writable = {k: v for k, v in changes.items() if k not in IMMUTABLE_FIELDS}
        unknown = sorted(k for k in writable if k not in WRITABLE_FIELDS)
        if unknown:
            raise ValidationAppError(
                code="unknown_fields",
                message="Request contains fields that cannot be updated",
                details={"unknown_fields": unknown},
            )
        check_column_types(writable)

        record = await self._store.update(signup_id, writable)
        logger.info(
            "signup.updated",
            extra={"signup_id": signup_id, "changed_fields": sorted(writable)},
        )
        return record

    async def delete_signup(self, signup_id: str) -> None:
        await self._store.delete(signup_id)
        logger.info("signup.deleted", extra={"signup_id": signup_id})
