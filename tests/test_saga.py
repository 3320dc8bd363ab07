# tests/test_saga.py
import asyncio
import logging
from datetime import timedelta

from pydantic import SecretStr

from wedding_signup.identity.errors import IdentityOutcomeUnknownError
from wedding_signup.identity.models import OwnerIdentity
from wedding_signup.signup.saga import AccountProvisioningSaga, ProvisioningRequest, ProvisioningState
from wedding_signup.tenants.models import AccountCreate, SubscriptionStatus
from wedding_signup.tenants.storage_interfaces import AbstractTenantStore

from conftest import STRONG_PASSWORD, FakeIdentityProvider, no_sleep


class SlowTenantStore(AbstractTenantStore):
    async def initialize(self) -> None:
        pass

    async def teardown(self) -> None:
        pass

    async def create_account(self, account):
        await asyncio.sleep(1)

    async def get_tenant_by_slug(self, slug):
        return None

    async def owner_exists(self, identity_id):
        return False


class BrokenTenantStore(SlowTenantStore):
    async def create_account(self, account):
        raise RuntimeError("disk full")


def provisioning_request(clock, slug="alice-bob", email="alice@example.com") -> ProvisioningRequest:
    return ProvisioningRequest(
        email=email,
        credential=SecretStr(STRONG_PASSWORD),
        partner1_name="Alice",
        partner2_name="Bob",
        wedding_date=None,
        slug=slug,
        theme_id="classic",
        subscription_status=SubscriptionStatus.TRIAL,
        subscription_end_date=clock() + timedelta(days=30),
    )


async def test_success_creates_identity_and_tenant(saga, identity_provider, tenant_store, clock):
    outcome = await saga.run(provisioning_request(clock))
    assert outcome.succeeded
    assert outcome.state == ProvisioningState.TENANT_CREATED
    assert outcome.account.identity_id == identity_provider.created[0].id
    assert (await tenant_store.get_tenant_by_slug("alice-bob")).owner_id == outcome.identity_id


async def test_existing_identity_stops_before_tenant(saga, identity_provider, tenant_store, clock):
    await identity_provider.create_identity("alice@example.com", "x", None)
    outcome = await saga.run(provisioning_request(clock))
    assert outcome.state == ProvisioningState.NOT_STARTED
    assert outcome.identity_already_exists
    assert await tenant_store.get_tenant_by_slug("alice-bob") is None
    assert identity_provider.deleted == []


async def test_identity_failure_has_nothing_to_undo(saga, identity_provider, tenant_store, clock):
    identity_provider.fail_create = True
    outcome = await saga.run(provisioning_request(clock))
    assert outcome.state == ProvisioningState.NOT_STARTED
    assert outcome.failure_reason == "identity_error"
    assert await tenant_store.get_tenant_by_slug("alice-bob") is None


async def test_slug_conflict_rolls_back_identity(saga, identity_provider, tenant_store, clock):
    await tenant_store.create_account(
        AccountCreate(
            identity_id="someone-else",
            email="carol@example.com",
            partner1_name="Carol",
            partner2_name="Dan",
            slug="alice-bob",
            theme_id="luxe",
            subscription_status=SubscriptionStatus.TRIAL,
            subscription_end_date=clock(),
        )
    )
    outcome = await saga.run(provisioning_request(clock))
    assert outcome.state == ProvisioningState.ROLLED_BACK
    assert outcome.slug_conflict.permanent
    assert identity_provider.identities == {}
    assert identity_provider.deleted == [outcome.identity_id]


async def test_tenant_error_rolls_back_identity(identity_provider, clock):
    saga = AccountProvisioningSaga(identity_provider, BrokenTenantStore())
    outcome = await saga.run(provisioning_request(clock))
    assert outcome.state == ProvisioningState.ROLLED_BACK
    assert outcome.failure_reason == "tenant_error"
    assert identity_provider.identities == {}


async def test_tenant_timeout_compensates(identity_provider, clock):
    saga = AccountProvisioningSaga(identity_provider, SlowTenantStore(), tenant_timeout=0.05)
    outcome = await saga.run(provisioning_request(clock))
    assert outcome.state == ProvisioningState.ROLLED_BACK
    assert outcome.failure_reason == "tenant_timeout"
    assert identity_provider.identities == {}


async def test_compensation_retries_before_succeeding(identity_provider, clock):
    sleeps = []

    async def record_sleep(seconds):
        sleeps.append(seconds)

    identity_provider.delete_failures = 2
    saga = AccountProvisioningSaga(identity_provider, BrokenTenantStore(), sleep=record_sleep)
    outcome = await saga.run(provisioning_request(clock))
    assert outcome.state == ProvisioningState.ROLLED_BACK
    assert sleeps == [0.1, 0.2]
    assert identity_provider.identities == {}


async def test_failed_compensation_is_reported_critically(identity_provider, clock, caplog):
    identity_provider.delete_failures = 3
    saga = AccountProvisioningSaga(identity_provider, BrokenTenantStore(), sleep=lambda s: asyncio.sleep(0))
    with caplog.at_level(logging.WARNING):
        outcome = await saga.run(provisioning_request(clock))

    assert outcome.state == ProvisioningState.COMPENSATION_FAILED
    assert outcome.identity_id in identity_provider.identities
    critical = [r for r in caplog.records if r.levelno == logging.CRITICAL]
    assert len(critical) == 1
    assert outcome.identity_id in critical[0].getMessage()


class UnansweredIdentityProvider(FakeIdentityProvider):
    """Every create is sent but never answered, and commits nothing."""

    async def create_identity(self, email, credential, metadata):
        self.create_calls += 1
        raise IdentityOutcomeUnknownError("read timeout")


def late_reply_saga(identity_provider, tenant_store, grace: float) -> AccountProvisioningSaga:
    return AccountProvisioningSaga(
        identity_provider,
        tenant_store,
        identity_timeout=0.05,
        identity_grace_seconds=grace,
        sleep=no_sleep,
    )


async def test_identity_answering_after_timeout_is_rolled_back(identity_provider, tenant_store, clock):
    identity_provider.reply_delay = 0.2
    saga = late_reply_saga(identity_provider, tenant_store, grace=1.0)

    outcome = await saga.run(provisioning_request(clock))

    assert outcome.state == ProvisioningState.ROLLED_BACK
    assert outcome.failure_reason == "identity_timeout"
    assert identity_provider.identities == {}
    assert identity_provider.deleted == [identity_provider.created[0].id]
    assert await tenant_store.get_tenant_by_slug("alice-bob") is None


async def test_identity_silent_past_grace_is_found_by_email_and_rolled_back(identity_provider, tenant_store, clock):
    identity_provider.reply_delay = 5
    saga = late_reply_saga(identity_provider, tenant_store, grace=0.05)

    outcome = await saga.run(provisioning_request(clock))

    assert outcome.state == ProvisioningState.ROLLED_BACK
    assert identity_provider.lookups == 1
    assert identity_provider.identities == {}


async def test_lost_create_reply_is_resolved_by_lookup(identity_provider, tenant_store, clock):
    identity_provider.lose_reply = True
    saga = late_reply_saga(identity_provider, tenant_store, grace=1.0)

    outcome = await saga.run(provisioning_request(clock))

    assert outcome.state == ProvisioningState.ROLLED_BACK
    assert outcome.failure_reason == "identity_unanswered"
    assert identity_provider.identities == {}


async def test_unanswered_create_that_committed_nothing_has_nothing_to_undo(tenant_store, clock):
    provider = UnansweredIdentityProvider()
    saga = late_reply_saga(provider, tenant_store, grace=1.0)

    outcome = await saga.run(provisioning_request(clock))

    assert outcome.state == ProvisioningState.NOT_STARTED
    assert outcome.failure_reason == "identity_unanswered"
    assert provider.lookups == 1
    assert provider.deleted == []


async def test_lookup_never_deletes_an_identity_that_owns_a_wedding(tenant_store, clock):
    provider = UnansweredIdentityProvider()
    provider.identities["owner-1"] = OwnerIdentity(id="owner-1", email="alice@example.com")
    await tenant_store.create_account(
        AccountCreate(
            identity_id="owner-1",
            email="alice@example.com",
            partner1_name="Alice",
            partner2_name="Bob",
            slug="alice-and-bob",
            theme_id="classic",
            subscription_status=SubscriptionStatus.TRIAL,
            subscription_end_date=clock(),
        )
    )
    saga = late_reply_saga(provider, tenant_store, grace=1.0)

    outcome = await saga.run(provisioning_request(clock))

    assert outcome.state == ProvisioningState.NOT_STARTED
    assert outcome.identity_already_exists
    assert provider.deleted == []
    assert "owner-1" in provider.identities


async def test_unresolvable_timeout_is_reported_critically(identity_provider, tenant_store, clock, caplog):
    identity_provider.reply_delay = 5
    identity_provider.fail_lookup = True
    saga = late_reply_saga(identity_provider, tenant_store, grace=0.05)

    with caplog.at_level(logging.WARNING):
        outcome = await saga.run(provisioning_request(clock))

    assert outcome.state == ProvisioningState.COMPENSATION_FAILED
    assert outcome.failure_reason == "identity_timeout"
    critical = [r for r in caplog.records if r.levelno == logging.CRITICAL]
    assert len(critical) == 1
    assert "alice-bob" in critical[0].getMessage()
