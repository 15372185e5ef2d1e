"""Pydantic schemas for signup records and API responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_STATUS = "pending"
ENTRY_SOURCE_ONLINE = "online"
ENTRY_SOURCE_MANUAL = "manual"

# Columns a caller may write; id and created_at are always store-assigned.
WRITABLE_FIELDS: frozenset[str] = frozenset(
    {
        "full_name",
        "email",
        "phone",
        "referral_source",
        "goals",
        "newsletter_opt_in",
        "status",
        "entry_source",
        "notes",
    }
)
IMMUTABLE_FIELDS: frozenset[str] = frozenset({"id", "created_at"})


class NewSignup(BaseModel):
    """A record ready to be inserted.

    Defaults here are the single place where an unset ``newsletter_opt_in``
    becomes ``True`` and a new record becomes ``pending``.
    """

    model_config = ConfigDict(frozen=True)

    full_name: str
    email: str
    phone: str
    referral_source: str | None = None
    goals: str | None = None
    newsletter_opt_in: bool = True
    status: str = DEFAULT_STATUS
    entry_source: str = ENTRY_SOURCE_ONLINE
    notes: str | None = None


class SignupRecord(BaseModel):
    """A persisted signup row."""

    id: str = Field(..., description="Store-assigned identifier.")
    full_name: str
    email: str = Field(..., description="Lower-cased email, unique across records.")
    phone: str
    referral_source: str | None = None
    goals: str | None = None
    newsletter_opt_in: bool = True
    status: str = DEFAULT_STATUS
    entry_source: str = ENTRY_SOURCE_ONLINE
    notes: str | None = None
    created_at: datetime


class SignupSummary(BaseModel):
    """Public echo of a created signup."""

    full_name: str
    email: str
    created_at: datetime


class SignupCreatedResponse(BaseModel):
    success: bool = True
    message: str = Field(
        "Thank you for signing up for the Sisterhood Initiative!",
        description="Confirmation shown to the applicant.",
    )
    data: SignupSummary


class SignupResponse(BaseModel):
    success: bool = True
    data: SignupRecord


class SignupListResponse(BaseModel):
    success: bool = True
    data: list[SignupRecord] = Field(
        default_factory=list,
        description="All signups, newest first.",
    )


class MessageResponse(BaseModel):
    success: bool = True
    message: str
