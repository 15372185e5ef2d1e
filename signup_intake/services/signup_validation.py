"""Validation and normalization of public signup payloads.

Every rule runs on every request and all violations are reported together,
so the applicant can fix the whole form in one round-trip.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping

from email_validator import EmailNotValidError, validate_email

from signup_intake.core.errors import FieldViolation, ValidationAppError
from signup_intake.schemas.signup import ENTRY_SOURCE_ONLINE, NewSignup

FULL_NAME_MIN_CHARS = 2
FULL_NAME_MAX_CHARS = 100
PHONE_MIN_DIGITS = 10
PHONE_MAX_DIGITS = 15
REFERRAL_SOURCE_MAX_CHARS = 100
GOALS_MAX_CHARS = 1000

_NON_DIGIT = re.compile(r"\D")


@dataclass(frozen=True)
class SignupSubmission:
    """A validated, normalized public signup.

    ``newsletter_opt_in`` is ``None`` when the client did not send it; the
    default is applied when the record is built for insertion.
    """

    full_name: str
    email: str
    phone: str
    referral_source: str | None = None
    goals: str | None = None
    newsletter_opt_in: bool | None = None

    def to_new_signup(self) -> NewSignup:
        return NewSignup(
            full_name=self.full_name,
            email=self.email,
            phone=self.phone,
            referral_source=self.referral_source,
            goals=self.goals,
            newsletter_opt_in=self.newsletter_opt_in is not False,
            entry_source=ENTRY_SOURCE_ONLINE,
        )


def normalize_email(email: str) -> str:
    return email.strip().lower()


def count_digits(phone: str) -> int:
    return len(_NON_DIGIT.sub("", phone))


def _optional_text(
    payload: Mapping[str, Any],
    field: str,
    label: str,
    errors: list[FieldViolation],
) -> str | None:
    """Return the trimmed string for ``field``, or None when absent or blank.

    A present non-string value is recorded as a violation.
    """
    value = payload.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        errors.append({"field": field, "message": f"{label} must be text"})
        return None
    return value.strip() or None


def _required_text(
    payload: Mapping[str, Any],
    field: str,
    label: str,
    errors: list[FieldViolation],
) -> str | None:
    count = len(errors)
    value = _optional_text(payload, field, label, errors)
    if value is None and len(errors) == count:
        errors.append({"field": field, "message": f"{label} is required"})
    return value


def _check_full_name(payload: Mapping[str, Any], errors: list[FieldViolation]) -> str:
    name = _required_text(payload, "full_name", "Full name", errors)
    if name is None:
        return ""
    if not FULL_NAME_MIN_CHARS <= len(name) <= FULL_NAME_MAX_CHARS:
        errors.append(
            {
                "field": "full_name",
                "message": (
                    f"Name must be between {FULL_NAME_MIN_CHARS} "
                    f"and {FULL_NAME_MAX_CHARS} characters"
                ),
            }
        )
    return name


def _check_email(payload: Mapping[str, Any], errors: list[FieldViolation]) -> str:
    email = _required_text(payload, "email", "Email", errors)
    if email is None:
        return ""
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        errors.append({"field": "email", "message": "Please provide a valid email address"})
    return normalize_email(email)


def _check_phone(payload: Mapping[str, Any], errors: list[FieldViolation]) -> str:
    phone = _required_text(payload, "phone", "Phone number", errors)
    if phone is None:
        return ""
    if not PHONE_MIN_DIGITS <= count_digits(phone) <= PHONE_MAX_DIGITS:
        errors.append(
            {
                "field": "phone",
                "message": f"Phone number must be {PHONE_MIN_DIGITS}-{PHONE_MAX_DIGITS} digits",
            }
        )
    return phone


def _check_optional_text(
    payload: Mapping[str, Any],
    field: str,
    label: str,
    max_chars: int,
    errors: list[FieldViolation],
) -> str | None:
    value = _optional_text(payload, field, label, errors)
    if value is not None and len(value) > max_chars:
        errors.append(
            {"field": field, "message": f"{label} must be {max_chars} characters or less"}
        )
    return value


def _check_newsletter(payload: Mapping[str, Any], errors: list[FieldViolation]) -> bool | None:
    if "newsletter_opt_in" not in payload or payload["newsletter_opt_in"] is None:
        return None
    value = payload["newsletter_opt_in"]
    if not isinstance(value, bool):
        errors.append(
            {"field": "newsletter_opt_in", "message": "Newsletter opt-in must be true or false"}
        )
        return None
    return value


def collect_violations(payload: Mapping[str, Any]) -> tuple[SignupSubmission, list[FieldViolation]]:
    """Run every rule and return the normalized values alongside all violations."""

    errors: list[FieldViolation] = []
    submission = SignupSubmission(
        full_name=_check_full_name(payload, errors),
        email=_check_email(payload, errors),
        phone=_check_phone(payload, errors),
        referral_source=_check_optional_text(
            payload, "referral_source", "Referral source", REFERRAL_SOURCE_MAX_CHARS, errors
        ),
        goals=_check_optional_text(payload, "goals", "Goals", GOALS_MAX_CHARS, errors),
        newsletter_opt_in=_check_newsletter(payload, errors),
    )
    return submission, errors


def validate_signup_payload(payload: Mapping[str, Any]) -> SignupSubmission:
    """Validate a public signup payload.

    Args:
        payload: Decoded JSON body.

    Returns:
        SignupSubmission with trimmed strings, a lower-cased email and the
        phone kept as typed (only its digit count is checked).

    Raises:
        ValidationAppError: Listing every violated field in ``details.fields``.
    """

    submission, errors = collect_violations(payload)
    if errors:
        raise ValidationAppError(
            code="validation_failed",
            message="Please correct the following errors",
            details={"fields": errors},
        )
    return submission
