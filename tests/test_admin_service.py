"""Tests for admin record operations."""

import pytest

from signup_intake.adapters.store.in_memory import InMemorySignupStore
from signup_intake.core.errors import DuplicateEmailAppError, NotFoundAppError, ValidationAppError
from signup_intake.services.admin_service import SignupAdminService
from signup_intake.services.signup_service import SignupService


@pytest.fixture
def store() -> InMemorySignupStore:
    return InMemorySignupStore()


@pytest.fixture
def admin(store: InMemorySignupStore) -> SignupAdminService:
    return SignupAdminService(store, SignupService(store))


class TestCreate:
    @pytest.mark.asyncio
    async def test_manual_defaults(self, admin: SignupAdminService) -> None:
        record = await admin.create_signup(
            {"full_name": "Jo", "email": "Jo@Example.com", "phone": "123"}
        )

        assert record.email == "jo@example.com"
        assert record.entry_source == "manual"
        assert record.status == "pending"
        assert record.newsletter_opt_in is True
        assert record.notes is None

    @pytest.mark.asyncio
    async def test_no_length_or_format_rules(self, admin: SignupAdminService) -> None:
        record = await admin.create_signup(
            {"full_name": "J", "email": "walk-in", "phone": "n/a"}
        )

        assert record.full_name == "J"
        assert record.email == "walk-in"

    @pytest.mark.asyncio
    async def test_operator_supplied_fields_are_kept(self, admin: SignupAdminService) -> None:
        record = await admin.create_signup(
            {
                "full_name": "Jane Doe",
                "email": "jane@example.com",
                "phone": "5551234567",
                "status": "approved",
                "notes": "Met at the fair",
                "entry_source": "event",
                "newsletter_opt_in": False,
                "referral_source": "",
            }
        )

        assert record.status == "approved"
        assert record.notes == "Met at the fair"
        assert record.entry_source == "event"
        assert record.newsletter_opt_in is False
        assert record.referral_source is None

    @pytest.mark.asyncio
    async def test_missing_required_fields(self, admin: SignupAdminService) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            await admin.create_signup({"full_name": "Jane", "email": "  "})

        assert exc_info.value.code == "missing_required_fields"
        assert exc_info.value.details == {"missing_fields": ["email", "phone"]}

    @pytest.mark.asyncio
    async def test_wrong_types_are_rejected(self, admin: SignupAdminService) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            await admin.create_signup(
                {"full_name": "Jane", "email": "j@example.com", "phone": 5551234567}
            )

        assert exc_info.value.code == "invalid_field_types"

    @pytest.mark.asyncio
    async def test_duplicate_email_is_rejected(self, admin: SignupAdminService) -> None:
        await admin.create_signup({"full_name": "A", "email": "a@example.com", "phone": "1"})

        with pytest.raises(DuplicateEmailAppError):
            await admin.create_signup({"full_name": "B", "email": "A@EXAMPLE.COM", "phone": "2"})


class TestUpdate:
    @pytest.mark.asyncio
    async def test_id_and_created_at_are_stripped(self, admin: SignupAdminService) -> None:
        record = await admin.create_signup({"full_name": "A", "email": "a@example.com", "phone": "1"})

        updated = await admin.update_signup(
            record.id,
            {
                "id": "other",
                "created_at": "1999-01-01T00:00:00Z",
                "status": "contacted",
                "notes": "left voicemail",
            },
        )

        assert updated.id == record.id
        assert updated.created_at == record.created_at
        assert updated.status == "contacted"
        assert updated.notes == "left voicemail"

    @pytest.mark.asyncio
    async def test_unknown_fields_are_rejected(self, admin: SignupAdminService) -> None:
        record = await admin.create_signup({"full_name": "A", "email": "a@example.com", "phone": "1"})

        with pytest.raises(ValidationAppError) as exc_info:
            await admin.update_signup(record.id, {"shoe_size": "7"})

        assert exc_info.value.details == {"unknown_fields": ["shoe_size"]}

    @pytest.mark.asyncio
    async def test_required_columns_cannot_be_nulled(self, admin: SignupAdminService) -> None:
        record = await admin.create_signup({"full_name": "A", "email": "a@example.com", "phone": "1"})

        with pytest.raises(ValidationAppError):
            await admin.update_signup(record.id, {"full_name": None})

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "changes",
        [{"email": "   "}, {"full_name": ""}, {"phone": " "}, {"email": "   ", "full_name": ""}],
    )
    async def test_required_columns_cannot_be_blanked(self, admin: SignupAdminService, changes) -> None:
        record = await admin.create_signup({"full_name": "A", "email": "a@example.com", "phone": "1"})

        with pytest.raises(ValidationAppError) as exc_info:
            await admin.update_signup(record.id, changes)

        assert exc_info.value.code == "invalid_field_types"
        assert {f["field"] for f in exc_info.value.details["fields"]} == set(changes)
        stored = await admin.get_signup(record.id)
        assert (stored.full_name, stored.email, stored.phone) == ("A", "a@example.com", "1")

    @pytest.mark.asyncio
    async def test_optional_columns_can_be_cleared(self, admin: SignupAdminService) -> None:
        record = await admin.create_signup(
            {"full_name": "A", "email": "a@example.com", "phone": "1", "notes": "x"}
        )

        updated = await admin.update_signup(record.id, {"notes": None})

        assert updated.notes is None

    @pytest.mark.asyncio
    async def test_missing_id(self, admin: SignupAdminService) -> None:
        with pytest.raises(NotFoundAppError):
            await admin.update_signup("missing", {"status": "x"})


class TestReadAndDelete:
    @pytest.mark.asyncio
    async def test_delete_then_list_excludes_record(self, admin: SignupAdminService) -> None:
        keep = await admin.create_signup({"full_name": "A", "email": "a@example.com", "phone": "1"})
        gone = await admin.create_signup({"full_name": "B", "email": "b@example.com", "phone": "2"})

        await admin.delete_signup(gone.id)

        assert [r.id for r in await admin.list_signups()] == [keep.id]

    @pytest.mark.asyncio
    async def test_delete_missing_is_not_found(self, admin: SignupAdminService) -> None:
        with pytest.raises(NotFoundAppError):
            await admin.delete_signup("missing")

    @pytest.mark.asyncio
    async def test_get_missing_is_not_found(self, admin: SignupAdminService) -> None:
        with pytest.raises(NotFoundAppError):
            await admin.get_signup("missing")
