# tests/test_slug_service.py
import pytest

from wedding_signup.reservations.models import ReservationFields
from wedding_signup.slugs.service import SlugAvailabilityService
from wedding_signup.tenants.models import AccountCreate, SubscriptionStatus


@pytest.fixture
def service(tenant_store, reservation_store):
    return SlugAvailabilityService(tenant_store, reservation_store)


async def test_free_slug_is_available(service):
    result = await service.check("Alice-Bob")
    assert result.available
    assert result.reason is None


async def test_invalid_format_has_no_suggestions(service):
    result = await service.check("a-b")
    assert not result.available
    assert result.reason == "invalid_format"
    assert result.suggestions is None


async def test_reserved_name(service):
    result = await service.check("admin")
    assert result.reason == "reserved"
    assert result.suggestions


async def test_taken_by_wedding(service, tenant_store, clock):
    await tenant_store.create_account(
        AccountCreate(
            identity_id="user-1",
            email="alice@example.com",
            partner1_name="Alice",
            partner2_name="Bob",
            slug="alice-bob",
            theme_id="classic",
            subscription_status=SubscriptionStatus.TRIAL,
            subscription_end_date=clock(),
        )
    )
    result = await service.check("alice-bob")
    assert result.reason == "taken"
    assert "alice-bob-2" in result.suggestions


async def test_pending_reservation(service, reservation_store, clock):
    await reservation_store.try_reserve(
        "alice-bob",
        "cs_1",
        ReservationFields(
            email="alice@example.com",
            partner1_name="Alice",
            partner2_name="Bob",
            theme_id="classic",
            sealed_credential="sealed-token",
        ),
    )
    assert (await service.check("alice-bob")).reason == "pending"

    clock.advance(hours=25)
    assert (await service.check("alice-bob")).available
