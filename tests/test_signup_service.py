"""Tests for the duplicate-email guard in SignupService."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from signup_intake.adapters.store.in_memory import InMemorySignupStore
from signup_intake.core.errors import DuplicateEmailAppError, StoreAppError, ValidationAppError
from signup_intake.services.signup_service import SignupService


def _payload(email: str = "jane@example.com", **overrides) -> dict:
    payload = {"full_name": "Jane Doe", "email": email, "phone": "(555) 123-4567"}
    payload.update(overrides)
    return payload


class RacingStore(InMemorySignupStore):
    """Store whose lookup yields to the event loop, so concurrent callers all
    pass the pre-check before any of them inserts."""

    def __init__(self, callers: int) -> None:
        super().__init__()
        self._barrier = asyncio.Barrier(callers)

    async def find_by_email_ci(self, email):
        found = await super().find_by_email_ci(email)
        await self._barrier.wait()
        return found


@pytest.mark.asyncio
async def test_register_persists_normalized_record() -> None:
    store = InMemorySignupStore()
    service = SignupService(store)

    record = await service.register(_payload(email="Jane@Example.COM", goals="  grow  "))

    assert record.email == "jane@example.com"
    assert record.goals == "grow"
    assert record.phone == "(555) 123-4567"
    assert record.status == "pending"
    assert record.entry_source == "online"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, expected",
    [({}, True), ({"newsletter_opt_in": True}, True), ({"newsletter_opt_in": False}, False)],
)
async def test_newsletter_default_is_applied(overrides, expected) -> None:
    service = SignupService(InMemorySignupStore())

    record = await service.register(_payload(**overrides))

    assert record.newsletter_opt_in is expected


@pytest.mark.asyncio
async def test_case_variant_email_collides() -> None:
    service = SignupService(InMemorySignupStore())
    await service.register(_payload(email="foo@bar.com"))

    with pytest.raises(DuplicateEmailAppError) as exc_info:
        await service.register(_payload(email="Foo@Bar.COM"))

    assert exc_info.value.code == "email_already_registered"


@pytest.mark.asyncio
async def test_concurrent_submissions_exactly_one_wins() -> None:
    store = RacingStore(callers=2)
    service = SignupService(store, precheck=True)

    results = await asyncio.gather(
        service.register(_payload(email="race@example.com")),
        service.register(_payload(email="RACE@example.com")),
        return_exceptions=True,
    )

    successes = [r for r in results if not isinstance(r, Exception)]
    duplicates = [r for r in results if isinstance(r, DuplicateEmailAppError)]
    assert len(successes) == 1
    assert len(duplicates) == 1
    assert len(await store.list_all()) == 1


@pytest.mark.asyncio
async def test_many_concurrent_submissions_without_precheck() -> None:
    store = InMemorySignupStore()
    service = SignupService(store, precheck=False)

    results = await asyncio.gather(
        *(service.register(_payload(email="same@example.com")) for _ in range(10)),
        return_exceptions=True,
    )

    assert sum(not isinstance(r, Exception) for r in results) == 1
    assert sum(isinstance(r, DuplicateEmailAppError) for r in results) == 9


@pytest.mark.asyncio
async def test_insert_time_violation_is_authoritative_when_precheck_passes() -> None:
    store = AsyncMock()
    store.find_by_email_ci.return_value = None
    store.insert.side_effect = DuplicateEmailAppError(
        code="email_already_registered", message="taken"
    )
    service = SignupService(store)

    with pytest.raises(DuplicateEmailAppError):
        await service.register(_payload())

    store.find_by_email_ci.assert_awaited_once_with("jane@example.com")
    store.insert.assert_awaited_once()


@pytest.mark.asyncio
async def test_precheck_hit_skips_the_insert() -> None:
    store = AsyncMock()
    store.find_by_email_ci.return_value = object()
    service = SignupService(store)

    with pytest.raises(DuplicateEmailAppError):
        await service.register(_payload())

    store.insert.assert_not_awaited()


@pytest.mark.asyncio
async def test_precheck_failure_falls_through_to_insert() -> None:
    store = InMemorySignupStore()
    store.find_by_email_ci = AsyncMock(
        side_effect=StoreAppError(code="store_unavailable", message="down")
    )
    service = SignupService(store)

    record = await service.register(_payload())

    assert record.email == "jane@example.com"


@pytest.mark.asyncio
async def test_insert_store_error_propagates() -> None:
    store = AsyncMock()
    store.find_by_email_ci.return_value = None
    store.insert.side_effect = StoreAppError(code="store_unavailable", message="down")
    service = SignupService(store)

    with pytest.raises(StoreAppError):
        await service.register(_payload())


@pytest.mark.asyncio
async def test_validation_runs_before_any_store_call() -> None:
    store = AsyncMock()
    service = SignupService(store)

    with pytest.raises(ValidationAppError):
        await service.register(_payload(phone="555-123"))

    store.find_by_email_ci.assert_not_awaited()
    store.insert.assert_not_awaited()
