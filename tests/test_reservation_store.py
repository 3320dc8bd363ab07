# tests/test_reservation_store.py
import asyncio

from wedding_signup.reservations.models import PendingReservation, ReservationFields, ReservationStatus
from wedding_signup.slugs.models import ClaimHolder, SlugConflict
from wedding_signup.tenants.models import AccountCreate, SubscriptionStatus


def reservation_fields(email: str = "alice@example.com") -> ReservationFields:
    return ReservationFields(
        email=email,
        partner1_name="Alice",
        partner2_name="Bob",
        wedding_date="2027-06-12",
        theme_id="classic",
        sealed_credential="sealed-token",
    )


def trial_account(clock, slug: str = "alice-bob", identity_id: str = "user-1") -> AccountCreate:
    return AccountCreate(
        identity_id=identity_id,
        email=f"{identity_id}@example.com",
        partner1_name="Carol",
        partner2_name="Dan",
        slug=slug,
        theme_id="luxe",
        subscription_status=SubscriptionStatus.TRIAL,
        subscription_end_date=clock(),
    )


async def test_reserve_then_lookup(reservation_store, clock):
    result = await reservation_store.try_reserve("alice-bob", "cs_1", reservation_fields())
    assert isinstance(result, PendingReservation)
    assert result.status == ReservationStatus.PENDING
    assert result.expires_at == clock.now + reservation_store.ttl

    by_session = await reservation_store.get_by_session_id("cs_1")
    assert by_session.id == result.id
    assert by_session.sealed_credential == "sealed-token"

    active = await reservation_store.get_active_by_slug("alice-bob")
    assert active.id == result.id


async def test_second_session_for_same_slug_is_a_transient_conflict(reservation_store):
    await reservation_store.try_reserve("alice-bob", "cs_1", reservation_fields())
    result = await reservation_store.try_reserve("alice-bob", "cs_2", reservation_fields("eve@example.com"))
    assert result == SlugConflict(slug="alice-bob", holder=ClaimHolder.RESERVATION)
    assert not result.permanent
    assert await reservation_store.get_by_session_id("cs_2") is None


async def test_concurrent_reservations_have_one_winner(reservation_store):
    results = await asyncio.gather(*(
        reservation_store.try_reserve("alice-bob", f"cs_{i}", reservation_fields(f"user{i}@example.com"))
        for i in range(5)
    ))
    winners = [r for r in results if isinstance(r, PendingReservation)]
    losers = [r for r in results if isinstance(r, SlugConflict)]
    assert len(winners) == 1
    assert len(losers) == 4


async def test_replaying_a_session_returns_the_existing_reservation(reservation_store):
    first = await reservation_store.try_reserve("alice-bob", "cs_1", reservation_fields())
    again = await reservation_store.try_reserve("alice-bob", "cs_1", reservation_fields())
    assert isinstance(again, PendingReservation)
    assert again.id == first.id


async def test_replaying_a_session_for_another_slug_is_a_conflict(reservation_store):
    first = await reservation_store.try_reserve("alice-bob", "cs_1", reservation_fields())
    other = await reservation_store.try_reserve("carol-dan", "cs_1", reservation_fields())
    assert isinstance(other, SlugConflict)
    assert other.slug == "carol-dan"
    assert not other.permanent
    assert (await reservation_store.get_by_session_id("cs_1")).slug == first.slug
    assert await reservation_store.get_active_by_slug("carol-dan") is None


async def test_tenant_holds_slug_permanently(reservation_store, tenant_store, clock):
    await tenant_store.create_account(trial_account(clock))
    result = await reservation_store.try_reserve("alice-bob", "cs_1", reservation_fields())
    assert isinstance(result, SlugConflict)
    assert result.permanent


async def test_expired_reservation_no_longer_blocks(reservation_store, clock):
    first = await reservation_store.try_reserve("alice-bob", "cs_1", reservation_fields())
    clock.advance(hours=24, seconds=1)

    assert await reservation_store.get_active_by_slug("alice-bob") is None
    stale = await reservation_store.get_by_session_id("cs_1")
    assert stale.status == ReservationStatus.EXPIRED

    second = await reservation_store.try_reserve("alice-bob", "cs_2", reservation_fields("eve@example.com"))
    assert isinstance(second, PendingReservation)
    assert second.id != first.id
    assert (await reservation_store.get_active_by_slug("alice-bob")).id == second.id


async def test_reservation_still_blocks_just_before_ttl(reservation_store, clock):
    await reservation_store.try_reserve("alice-bob", "cs_1", reservation_fields())
    clock.advance(hours=23, minutes=59)
    result = await reservation_store.try_reserve("alice-bob", "cs_2", reservation_fields())
    assert isinstance(result, SlugConflict)


async def test_expire_stale_drops_credentials_and_claims(reservation_store, db_conn, clock):
    await reservation_store.try_reserve("alice-bob", "cs_1", reservation_fields())
    await reservation_store.try_reserve("carol-dan", "cs_2", reservation_fields())
    clock.advance(hours=12)
    await reservation_store.try_reserve("eve-frank", "cs_3", reservation_fields())
    clock.advance(hours=13)

    assert await reservation_store.expire_stale() == 2

    expired = await reservation_store.get_by_session_id("cs_1")
    assert expired.status == ReservationStatus.EXPIRED
    assert expired.sealed_credential is None
    live = await reservation_store.get_by_session_id("cs_3")
    assert live.status == ReservationStatus.PENDING
    assert live.sealed_credential == "sealed-token"

    claims = {row["slug"] for row in db_conn.execute("SELECT slug FROM slug_claims")}
    assert claims == {"eve-frank"}

    assert await reservation_store.expire_stale() == 0


async def test_list_reservations_newest_first(reservation_store, clock):
    await reservation_store.try_reserve("alice-bob", "cs_1", reservation_fields())
    clock.advance(minutes=5)
    await reservation_store.try_reserve("carol-dan", "cs_2", reservation_fields())

    listed = await reservation_store.list_reservations()
    assert [r.payment_session_id for r in listed] == ["cs_2", "cs_1"]
    assert [r.slug for r in await reservation_store.list_reservations(skip=1, limit=1)] == ["alice-bob"]
