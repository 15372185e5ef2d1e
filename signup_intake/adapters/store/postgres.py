"""PostgreSQL signup store (asyncpg).

This adapter owns its connection pool: ``open()`` creates it on application
startup and ``close()`` releases it on shutdown.

Email uniqueness is enforced by a unique index on ``lower(email)``. Inserts go
straight to the database and a unique violation (SQLSTATE 23505) is reported
as ``DuplicateEmailAppError``, so the guarantee holds across workers and
hosts, not only within one process.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

from signup_intake.adapters.store.base import AbstractSignupStore, clean_changes
from signup_intake.adapters.store.errors import duplicate_email, signup_not_found, store_failure
from signup_intake.core.errors import StoreAppError
from signup_intake.schemas.signup import NewSignup, SignupRecord

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, full_name, email, phone, referral_source, goals, newsletter_opt_in, "
    "status, entry_source, notes, created_at"
)

# Failures that mean "the store could not answer" rather than a domain outcome.
_TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    asyncio.TimeoutError,
    OSError,
)


def schema_statements(table: str) -> list[str]:
    """DDL for the signup table and its case-insensitive email constraint."""
    return [
        f"""
        CREATE TABLE IF NOT EXISTS {table} (
            id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
            full_name text NOT NULL,
            email text NOT NULL,
            phone text NOT NULL,
            referral_source text,
            goals text,
            newsletter_opt_in boolean NOT NULL DEFAULT true,
            status text NOT NULL DEFAULT 'pending',
            entry_source text NOT NULL DEFAULT 'online',
            notes text,
            created_at timestamptz NOT NULL DEFAULT now()
        )
        """,
        f"CREATE UNIQUE INDEX IF NOT EXISTS {table}_email_lower_key ON {table} (lower(email))",
        f"CREATE INDEX IF NOT EXISTS {table}_created_at_idx ON {table} (created_at DESC)",
    ]


def sanitize_database_url(url: str) -> str:
    """Drop ``sslmode`` from the query string; asyncpg does not accept it there."""
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(params), parts.fragment))


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except (ValueError, TypeError, AttributeError):
        return False
    return True


def _to_record(row: asyncpg.Record) -> SignupRecord:
    data = dict(row)
    data["id"] = str(data["id"])
    return SignupRecord(**data)


class PostgresSignupStore(AbstractSignupStore):
    """Signup store backed by a PostgreSQL table."""

    def __init__(
        self,
        *,
        dsn: str,
        table: str = "sisterhood_signups",
        min_size: int = 1,
        max_size: int = 5,
        command_timeout: float = 10.0,
        create_schema: bool = False,
    ) -> None:
        self._dsn = sanitize_database_url(dsn)
        self._table = table
        self._min_size = min_size
        self._max_size = max_size
        self._command_timeout = command_timeout
        self._create_schema = create_schema
        self._pool: asyncpg.Pool | None = None

    async def open(self) -> None:
        if self._pool is not None:
            return
        try:
            self._pool = await asyncpg.create_pool(
                dsn=self._dsn,
                min_size=self._min_size,
                max_size=self._max_size,
                command_timeout=self._command_timeout,
                timeout=self._command_timeout,
            )
        except _TRANSIENT_ERRORS as exc:
            logger.error(
                "store.open_failed",
                extra={"error_type": type(exc).__name__},
            )
            raise store_failure("open") from exc

        if self._create_schema:
            try:
                async with self._pool.acquire() as conn:
                    for statement in schema_statements(self._table):
                        await conn.execute(statement)
            except _TRANSIENT_ERRORS as exc:
                await self.close()
                raise self._failure("open", exc) from exc
            logger.info("store.schema_ready", extra={"table": self._table})

    async def close(self) -> None:
        if self._pool is None:
            return
        await self._pool.close()
        self._pool = None

    def _require_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise StoreAppError(
                code="store_not_initialized",
                message="Store is not initialized. Call open() on startup.",
            )
        return self._pool

    def _failure(self, operation: str, exc: BaseException) -> StoreAppError:
        logger.error(
            "store.error",
            extra={
                "operation": operation,
                "error_type": type(exc).__name__,
                "sqlstate": getattr(exc, "sqlstate", None),
            },
        )
        return store_failure(operation)

    async def find_by_email_ci(self, email: str) -> SignupRecord | None:
        try:
            row = await self._require_pool().fetchrow(
                f"SELECT {_COLUMNS} FROM {self._table} WHERE lower(email) = lower($1)",
                email.strip(),
            )
        except _TRANSIENT_ERRORS as exc:
            raise self._failure("find_by_email", exc) from exc
        return _to_record(row) if row is not None else None

    async def insert(self, signup: NewSignup) -> SignupRecord:
        try:
            row = await self._require_pool().fetchrow(
                f"""
                INSERT INTO {self._table}
                    (full_name, email, phone, referral_source, goals,
                     newsletter_opt_in, status, entry_source, notes)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                RETURNING {_COLUMNS}
                """,
                signup.full_name,
                signup.email.strip().lower(),
                signup.phone,
                signup.referral_source,
                signup.goals,
                signup.newsletter_opt_in,
                signup.status,
                signup.entry_source,
                signup.notes,
            )
        except asyncpg.UniqueViolationError as exc:
            raise duplicate_email() from exc
        except _TRANSIENT_ERRORS as exc:
            raise self._failure("insert", exc) from exc
        if row is None:
            raise store_failure("insert")
        return _to_record(row)

    async def get_by_id(self, signup_id: str) -> SignupRecord:
        if not _is_uuid(signup_id):
            raise signup_not_found(signup_id)
        try:
            row = await self._require_pool().fetchrow(
                f"SELECT {_COLUMNS} FROM {self._table} WHERE id = $1",
                uuid.UUID(signup_id),
            )
        except _TRANSIENT_ERRORS as exc:
            raise self._failure("get_by_id", exc) from exc
        if row is None:
            raise signup_not_found(signup_id)
        return _to_record(row)

    async def list_all(self) -> list[SignupRecord]:
        try:
            rows = await self._require_pool().fetch(
                f"SELECT {_COLUMNS} FROM {self._table} ORDER BY created_at DESC"
            )
        except _TRANSIENT_ERRORS as exc:
            raise self._failure("list", exc) from exc
        return [_to_record(r) for r in rows]

    async def update(self, signup_id: str, changes: Mapping[str, Any]) -> SignupRecord:
        cleaned = clean_changes(changes)
        if not cleaned:
            return await self.get_by_id(signup_id)
        if not _is_uuid(signup_id):
            raise signup_not_found(signup_id)

        # Column names come from the WRITABLE_FIELDS allow-list, never from input.
        columns = sorted(cleaned)
        assignments = ", ".join(f"{col} = ${i}" for i, col in enumerate(columns, start=2))
        try:
            row = await self._require_pool().fetchrow(
                f"UPDATE {self._table} SET {assignments} WHERE id = $1 RETURNING {_COLUMNS}",
                uuid.UUID(signup_id),
                *(cleaned[col] for col in columns),
            )
        except asyncpg.UniqueViolationError as exc:
            raise duplicate_email() from exc
        except _TRANSIENT_ERRORS as exc:
            raise self._failure("update", exc) from exc
        if row is None:
            raise signup_not_found(signup_id)
        return _to_record(row)

    async def delete(self, signup_id: str) -> None:
        if not _is_uuid(signup_id):
            raise signup_not_found(signup_id)
        try:
            row = await self._require_pool().fetchrow(
                f"DELETE FROM {self._table} WHERE id = $1 RETURNING id",
                uuid.UUID(signup_id),
            )
        except _TRANSIENT_ERRORS as exc:
            raise self._failure("delete", exc) from exc
        if row is None:
            raise signup_not_found(signup_id)
