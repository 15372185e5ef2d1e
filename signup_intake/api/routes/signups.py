"""Signup routes: public intake and admin CRUD."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, status

from signup_intake.core.auth import require_admin
from signup_intake.core.config import settings
from signup_intake.core.errors import PayloadTooLargeAppError, ValidationAppError
from signup_intake.core.rate_limit import enforce_signup_rate_limit
from signup_intake.schemas.signup import (
    MessageResponse,
    SignupCreatedResponse,
    SignupListResponse,
    SignupResponse,
    SignupSummary,
)
from signup_intake.services.admin_service import SignupAdminService
from signup_intake.services.signup_service import SignupService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Signups"])

_SIGNUP_BODY_SCHEMA = {
    "type": "object",
    "required": ["full_name", "email", "phone"],
    "properties": {
        "full_name": {"type": "string", "minLength": 2, "maxLength": 100},
        "email": {"type": "string", "format": "email"},
        "phone": {"type": "string", "description": "10-15 digits, any formatting"},
        "referral_source": {"type": "string", "maxLength": 100},
        "goals": {"type": "string", "maxLength": 1000},
        "newsletter_opt_in": {"type": "boolean", "default": True},
    },
}


def get_signup_service(request: Request) -> SignupService:
    return request.app.state.signup_service


def get_admin_service(request: Request) -> SignupAdminService:
    return request.app.state.admin_service


async def read_body_limited(request: Request) -> bytes:
    """Read the request body in chunks, enforcing ``APP_MAX_BODY_BYTES``.

    A declared ``Content-Length`` over the limit is rejected before reading;
    the running total is enforced again while streaming, since the header can
    be absent (chunked encoding) or wrong.

    Raises:
        PayloadTooLargeAppError: The body exceeds the configured limit (HTTP 413).
    """
    max_bytes = settings.app.max_body_bytes

    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > max_bytes:
        logger.warning(
            "request.body_rejected_by_header",
            extra={"content_length": int(declared), "max_bytes": max_bytes},
        )
        raise _body_too_large(max_bytes)

    size = 0
    chunks: list[bytes] = []
    async for chunk in request.stream():
        size += len(chunk)
        if size > max_bytes:
            logger.warning(
                "request.body_rejected_by_chunked_read",
                extra={"size": size, "max_bytes": max_bytes},
            )
            raise _body_too_large(max_bytes)
        chunks.append(chunk)
    return b"".join(chunks)


def _body_too_large(max_bytes: int) -> PayloadTooLargeAppError:
    return PayloadTooLargeAppError(
        code="payload_too_large",
        message=f"Request body too large. Maximum size: {max_bytes} bytes",
        details={"max_bytes": max_bytes},
    )


async def read_json_object(request: Request) -> dict[str, Any]:
    """Decode the request body as a JSON object.

    The body is read inside the handler, after route dependencies ran, so a
    rate-limited request is rejected before its payload is even parsed.

    Raises:
        ValidationAppError: The body is not valid JSON or not an object.
    """
    raw = await read_body_limited(request)
    try:
        body = json.loads(raw) if raw else {}
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationAppError(
            code="invalid_json",
            message="Request body must be valid JSON",
        ) from exc
    if not isinstance(body, dict):
        raise ValidationAppError(
            code="invalid_json",
            message="Request body must be a JSON object",
        )
    return body


@router.post(
    "/signup",
    response_model=SignupCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_signup_rate_limit)],
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": _SIGNUP_BODY_SCHEMA}},
        }
    },
)
async def submit_signup(
    request: Request,
    service: SignupService = Depends(get_signup_service),
) -> SignupCreatedResponse:
    """Register a new participant (public, rate-limited).

    Returns:
        SignupCreatedResponse echoing name, email and creation time.

    Raises:
        RateLimitAppError: 429 after too many attempts from this address.
        ValidationAppError: 400 listing every invalid field.
        PayloadTooLargeAppError: 413 when the body exceeds APP_MAX_BODY_BYTES.
        DuplicateEmailAppError: 409 when the email is already registered.
        StoreAppError: 500 when the store fails.
    """
    payload = await read_json_object(request)
    record = await service.register(payload)
    return SignupCreatedResponse(
        data=SignupSummary(
            full_name=record.full_name,
            email=record.email,
            created_at=record.created_at,
        )
    )


@router.get(
    "/signups",
    response_model=SignupListResponse,
    dependencies=[Depends(require_admin)],
)
async def list_signups(
    service: SignupAdminService = Depends(get_admin_service),
) -> SignupListResponse:
    """List all signups, newest first (admin)."""
    return SignupListResponse(data=await service.list_signups())


@router.get(
    "/signups/{signup_id}",
    response_model=SignupResponse,
    dependencies=[Depends(require_admin)],
)
async def get_signup(
    signup_id: str,
    service: SignupAdminService = Depends(get_admin_service),
) -> SignupResponse:
    """Fetch one signup by id (admin)."""
    return SignupResponse(data=await service.get_signup(signup_id))


@router.post(
    "/signups",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_signup(
    request: Request,
    service: SignupAdminService = Depends(get_admin_service),
) -> SignupResponse:
    """Create a manual signup (admin). Only name, email and phone are required."""
    payload = await read_json_object(request)
    return SignupResponse(data=await service.create_signup(payload))


@router.put(
    "/signups/{signup_id}",
    response_model=SignupResponse,
    dependencies=[Depends(require_admin)],
)
async def update_signup(
    signup_id: str,
    request: Request,
    service: SignupAdminService = Depends(get_admin_service),
) -> SignupResponse:
    """Merge fields into a signup (admin). ``id`` and ``created_at`` are ignored."""
    payload = await read_json_object(request)
    return SignupResponse(data=await service.update_signup(signup_id, payload))


@router.delete(
    "/signups/{signup_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_admin)],
)
async def delete_signup(
    signup_id: str,
    service: SignupAdminService = Depends(get_admin_service),
) -> MessageResponse:
    """Delete a signup permanently (admin)."""
    await service.delete_signup(signup_id)
    return MessageResponse(message="Signup deleted")
