"""Logging utilities with JSON formatting, PII scrubbing, and request correlation.

This module centralizes logging configuration:
- Context-aware request_id propagation via contextvars
- Scrubbing of secrets and applicant PII on log records
- JSON formatter for machine-friendly logs
- Configurable stdout/file handlers with rotation support

Applicant data never reaches log output. Fields named after applicant
columns (email, phone, name, goals, notes) are replaced wholesale, and email
addresses embedded in free text (exception messages from the database driver,
for instance) are masked. Code that needs to correlate events for the same
applicant or client logs a ``fingerprint()`` of the value instead.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from signup_intake.core.config import LogSettings, settings

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

REDACTED = "[REDACTED]"
EMAIL_MASK = "[EMAIL]"

_EMAIL_IN_TEXT = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")

SENSITIVE_KEYS_DEFAULT: frozenset[str] = frozenset(
    {
        # credentials
        "api_key",
        "x-api-key",
        "authorization",
        "cookie",
        "set-cookie",
        "token",
        "secret",
        "password",
        "admin_api_keys",
        "app_admin_api_keys",
        "database_url",
        "dsn",
        # applicant columns
        "full_name",
        "email",
        "phone",
        "goals",
        "notes",
    }
)

# Attributes every LogRecord carries; anything else arrived through ``extra=``
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def set_request_id(request_id: str | None) -> None:
    """Store the current request id in a context variable."""

    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


def fingerprint(value: str | None) -> str | None:
    """Return a short, stable digest of a sensitive value for log correlation.

    Examples:
        >>> fingerprint("foo@bar.com") == fingerprint("foo@bar.com")
        True
        >>> fingerprint(None) is None
        True
    """

    if value is None:
        return None
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:16]


def mask_emails(text: str) -> str:
    """Replace every email address found in ``text``.

    Examples:
        >>> mask_emails('Key (lower(email))=(jo@example.com) already exists.')
        'Key (lower(email))=([EMAIL]) already exists.'
    """

    return _EMAIL_IN_TEXT.sub(EMAIL_MASK, text)


def scrub(value: Any, sensitive_keys: frozenset[str] | set[str] = SENSITIVE_KEYS_DEFAULT) -> Any:
    """Recursively remove sensitive data from a structured log value.

    Mapping entries whose key is sensitive are replaced with ``[REDACTED]``;
    strings anywhere in the structure have email addresses masked.
    """

    if isinstance(value, str):
        return mask_emails(value)
    if isinstance(value, Mapping):
        return {
            k: REDACTED if str(k).lower() in sensitive_keys else scrub(v, sensitive_keys)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple, set, frozenset)):
        return [scrub(v, sensitive_keys) for v in value]
    return value


def record_extras(record: LogRecord) -> dict[str, Any]:
    """Return the fields attached to ``record`` through ``extra=``."""

    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


class RequestIdFilter(logging.Filter):
    """Attach request_id from context when absent on the record."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            request_id = get_request_id()
            if request_id:
                record.request_id = request_id
        return True


class SensitiveDataFilter(logging.Filter):
    """Scrub extras in place so every formatter downstream sees safe values."""

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.sensitive_keys = frozenset(k.lower() for k in (sensitive_keys or SENSITIVE_KEYS_DEFAULT))

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        for key, value in scrub(record_extras(record), self.sensitive_keys).items():
            setattr(record, key, value)
        return True


class JsonFormatter(logging.Formatter):
    """Format a LogRecord as one JSON object per line."""

    def __init__(
        self,
        *,
        sensitive_keys: Iterable[str] | None = None,
        ensure_ascii: bool = True,
    ) -> None:
        super().__init__()
        self.sensitive_keys = frozenset(k.lower() for k in (sensitive_keys or SENSITIVE_KEYS_DEFAULT))
        self.ensure_ascii = ensure_ascii

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": mask_emails(record.getMessage()),
        }

        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            payload["request_id"] = request_id

        payload.update(scrub(record_extras(record), self.sensitive_keys))

        if record.exc_info:
            payload["exc_info"] = mask_emails(self.formatException(record.exc_info))

        return json.dumps(payload, default=str, ensure_ascii=self.ensure_ascii)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/signup_intake.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if not log_settings.max_bytes:
        return logging.FileHandler(file_path, encoding="utf-8")
    return RotatingFileHandler(
        file_path,
        maxBytes=log_settings.max_bytes,
        backupCount=log_settings.backup_count,
        encoding="utf-8",
    )


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install a single scrubbing handler on the root logger.

    ``LOG_FORMAT=plain`` switches to a human-readable line format; the
    scrubbing filter applies either way. ``APP_DEBUG=true`` forces DEBUG
    level regardless of ``LOG_LEVEL``.
    """

    cfg = log_settings or settings.log

    level = logging.DEBUG if settings.app.debug else getattr(logging, cfg.level.upper(), logging.INFO)

    handler = _build_handler(cfg)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    if cfg.format.lower() == "plain":
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    else:
        handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # uvicorn installs its own handlers; keep its records off the root handler
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.access").propagate = False
