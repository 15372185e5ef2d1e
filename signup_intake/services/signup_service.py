"""Public signup intake: validation plus the duplicate-email guard.

The store's unique email constraint is the only authority on duplicates. The
optional lookup before inserting exists to answer the common "already signed
up" case without a failed write; it never makes the insert safe by itself,
since two concurrent submissions can both pass it. Whatever the lookup said,
a uniqueness violation raised by the insert is reported the same way.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from signup_intake.adapters.store.base import AbstractSignupStore
from signup_intake.adapters.store.errors import duplicate_email
from signup_intake.core.errors import DuplicateEmailAppError, StoreAppError
from signup_intake.core.logging import fingerprint
from signup_intake.schemas.signup import NewSignup, SignupRecord
from signup_intake.services.signup_validation import validate_signup_payload

logger = logging.getLogger(__name__)


class SignupService:
    """Coordinates validation, the duplicate pre-check and the insert."""

    def __init__(self, store: AbstractSignupStore, *, precheck: bool = True) -> None:
        self._store = store
        self._precheck = precheck

    async def register(self, payload: Mapping[str, Any]) -> SignupRecord:
        """Validate and persist a public signup.

        Raises:
            ValidationAppError: The payload violates one or more field rules.
            DuplicateEmailAppError: The email is already registered.
            StoreAppError: The store failed.
        """
        submission = validate_signup_payload(payload)
        record = await self.insert_unique(submission.to_new_signup())
        logger.info(
            "signup.created",
            extra={
                "signup_id": record.id,
                "email_hash": fingerprint(record.email),
                "entry_source": record.entry_source,
            },
        )
        return record

    async def insert_unique(self, signup: NewSignup, *, precheck: bool | None = None) -> SignupRecord:
        """Insert ``signup`` so that each email is stored at most once.

        Args:
            signup: The record to insert (email already normalized).
            precheck: Override the service default for the lookup fast path.
        """
        email_hash = fingerprint(signup.email)
        use_precheck = self._precheck if precheck is None else precheck

        if use_precheck and await self._already_registered(signup.email):
            logger.info(
                "signup.duplicate",
                extra={"email_hash": email_hash, "detected_by": "precheck"},
            )
            raise duplicate_email()

        try:
            return await self._store.insert(signup)
        except DuplicateEmailAppError:
            logger.info(
                "signup.duplicate",
                extra={"email_hash": email_hash, "detected_by": "constraint"},
            )
            raise

    async def _already_registered(self, email: str) -> bool:
        """Best-effort lookup; a store failure here defers to the insert."""
        try:
            return await self._store.find_by_email_ci(email) is not None
        except StoreAppError as exc:
            logger.warning(
                "signup.precheck_failed",
                extra={"error_code": exc.code},
            )
            return False
