"""In-process signup store.

Keeps records in a dict guarded by a lock, with a unique index on the
lower-cased email that behaves like the database constraint: the check and
the write happen atomically, so two concurrent inserts for the same email
cannot both succeed.

Per-process only and not durable. Meant for local development and tests.
"""

from __future__ import annotations

import itertools
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from signup_intake.adapters.store.base import AbstractSignupStore, clean_changes
from signup_intake.adapters.store.errors import duplicate_email, signup_not_found
from signup_intake.schemas.signup import NewSignup, SignupRecord


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemorySignupStore(AbstractSignupStore):
    """Dict-backed store with a case-insensitive unique email index."""

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._records: dict[str, SignupRecord] = {}
        self._id_by_email: dict[str, str] = {}
        # Insertion order breaks created_at ties when listing.
        self._sequence = itertools.count()
        self._order: dict[str, int] = {}

    async def find_by_email_ci(self, email: str) -> SignupRecord | None:
        with self._lock:
            signup_id = self._id_by_email.get(email.strip().lower())
            return self._records.get(signup_id) if signup_id else None

    async def insert(self, signup: NewSignup) -> SignupRecord:
        email_key = signup.email.strip().lower()
        with self._lock:
            if email_key in self._id_by_email:
                raise duplicate_email()
            record = SignupRecord(
                id=str(uuid.uuid4()),
                created_at=self._clock(),
                **{**signup.model_dump(), "email": email_key},
            )
            self._records[record.id] = record
            self._id_by_email[email_key] = record.id
            self._order[record.id] = next(self._sequence)
            return record

    async def get_by_id(self, signup_id: str) -> SignupRecord:
        with self._lock:
            record = self._records.get(signup_id)
        if record is None:
            raise signup_not_found(signup_id)
        return record

    async def list_all(self) -> list[SignupRecord]:
        with self._lock:
            records = list(self._records.values())
            order = dict(self._order)
        return sorted(
            records,
            key=lambda r: (r.created_at, order[r.id]),
            reverse=True,
        )

    async def update(self, signup_id: str, changes: Mapping[str, Any]) -> SignupRecord:
        cleaned = clean_changes(changes)
        with self._lock:
            current = self._records.get(signup_id)
            if current is None:
                raise signup_not_found(signup_id)
            if not cleaned:
                return current

            new_email = cleaned.get("email", current.email)
            owner = self._id_by_email.get(new_email)
            if owner is not None and owner != signup_id:
                raise duplicate_email()

            updated = current.model_copy(update=cleaned)
            self._records[signup_id] = updated
            if new_email != current.email:
                del self._id_by_email[current.email]
                self._id_by_email[new_email] = signup_id
            return updated

    async def delete(self, signup_id: str) -> None:
        with self._lock:
            record = self._records.pop(signup_id, None)
            if record is None:
                raise signup_not_found(signup_id)
            self._id_by_email.pop(record.email, None)
            self._order.pop(signup_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
