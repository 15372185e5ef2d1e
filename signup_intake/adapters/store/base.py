"""Signup store interface.

Services depend on this abstraction only. Every backend translates its own
failures into the domain vocabulary:

- ``DuplicateEmailAppError`` when the email uniqueness constraint rejects a write
- ``NotFoundAppError`` when the id does not exist
- ``StoreAppError`` for anything else (connection loss, timeouts, driver errors)

No backend lets a raw driver exception escape.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

from signup_intake.schemas.signup import IMMUTABLE_FIELDS, WRITABLE_FIELDS, NewSignup, SignupRecord


def clean_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Return the writable subset of a partial update.

    ``id`` and ``created_at`` are dropped, as is any key that is not a known
    column. A changed email is lower-cased so the stored form stays canonical.
    """
    cleaned = {
        key: value
        for key, value in changes.items()
        if key in WRITABLE_FIELDS and key not in IMMUTABLE_FIELDS
    }
    if isinstance(cleaned.get("email"), str):
        cleaned["email"] = cleaned["email"].strip().lower()
    return cleaned


class AbstractSignupStore(ABC):
    """Interface for signup persistence backends."""

    async def open(self) -> None:
        """Acquire backend resources (connection pools, schema)."""

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    async def find_by_email_ci(self, email: str) -> SignupRecord | None:
        """Return the record whose email matches case-insensitively, if any."""
        raise NotImplementedError

    @abstractmethod
    async def insert(self, signup: NewSignup) -> SignupRecord:
        """Insert a record; the store assigns ``id`` and ``created_at``.

        Raises:
            DuplicateEmailAppError: The email is already registered.
            StoreAppError: Any other backend failure.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_by_id(self, signup_id: str) -> SignupRecord:
        """Raises NotFoundAppError when absent."""
        raise NotImplementedError

    @abstractmethod
    async def list_all(self) -> list[SignupRecord]:
        """Return every record ordered by ``created_at`` descending."""
        raise NotImplementedError

    @abstractmethod
    async def update(self, signup_id: str, changes: Mapping[str, Any]) -> SignupRecord:
        """Apply a partial update and return the updated record.

        ``id`` and ``created_at`` in ``changes`` are ignored.

        Raises:
            NotFoundAppError: The id does not exist.
            DuplicateEmailAppError: The new email belongs to another record.
            StoreAppError: Any other backend failure.
        """
        raise NotImplementedError

    @abstractmethod
    async def delete(self, signup_id: str) -> None:
        """Physically delete a record.

        Raises:
            NotFoundAppError: The id does not exist.
            StoreAppError: Any other backend failure.
        """
        raise NotImplementedError
