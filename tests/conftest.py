# tests/conftest.py
import asyncio
import itertools
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

import httpx
import pytest

from wedding_signup.identity.errors import (
    IdentityAlreadyExistsError,
    IdentityOutcomeUnknownError,
    IdentityProviderError,
)
from wedding_signup.identity.models import IdentityMetadata, OwnerIdentity
from wedding_signup.identity.provider import AbstractIdentityProvider
from wedding_signup.notifications.dispatcher import NotificationDispatcher
from wedding_signup.notifications.email_client import AbstractEmailClient, EmailDeliveryError
from wedding_signup.notifications.models import EmailMessage
from wedding_signup.payments.errors import PaymentGatewayError
from wedding_signup.payments.gateway import AbstractPaymentGateway
from wedding_signup.payments.models import CheckoutSession, CheckoutSessionCreate
from wedding_signup.reservations.sqlite_reservation_store import SQLiteReservationStore
from wedding_signup.signup.models import SignupRequest
from wedding_signup.signup.saga import AccountProvisioningSaga
from wedding_signup.storage.sqlite_base import init_sqlite_db, open_sqlite_connection
from wedding_signup.tenants.sqlite_tenant_store import SQLiteTenantStore
from wedding_signup.utils.security import FernetEncryptor, generate_fernet_key

logger = logging.getLogger("SignupTests")

STRONG_PASSWORD = "Secret123"


class FakeClock:
    """Settable UTC clock shared by the stores and orchestrators under test."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeIdentityProvider(AbstractIdentityProvider):
    def __init__(self):
        self.identities: Dict[str, OwnerIdentity] = {}
        self.created: List[OwnerIdentity] = []
        self.deleted: List[str] = []
        self.create_calls = 0
        self.lookups = 0
        self.fail_create = False
        self.fail_lookup = False
        # Commit the identity, then answer this many seconds later
        self.reply_delay = 0.0
        # Commit the identity, then report the reply as lost
        self.lose_reply = False
        self.delete_failures = 0
        self._ids = itertools.count(1)

    async def create_identity(self, email: str, credential: str, metadata: IdentityMetadata) -> OwnerIdentity:
        self.create_calls += 1
        if self.fail_create:
            raise IdentityProviderError("identity provider unavailable", 503)
        if any(i.email == email for i in self.identities.values()):
            raise IdentityAlreadyExistsError("A user with this email address has already been registered", 422)
        identity = OwnerIdentity(id=f"user-{next(self._ids)}", email=email)
        self.identities[identity.id] = identity
        self.created.append(identity)
        if self.lose_reply:
            raise IdentityOutcomeUnknownError("connection reset after request was sent")
        if self.reply_delay:
            await asyncio.sleep(self.reply_delay)
        else:
            # Yield like a real network call so concurrent signups interleave
            await asyncio.sleep(0)
        return identity

    async def find_identity_by_email(self, email: str) -> Optional[OwnerIdentity]:
        self.lookups += 1
        if self.fail_lookup:
            raise IdentityProviderError("identity provider unavailable", 503)
        return next((i for i in self.identities.values() if i.email == email), None)

    async def delete_identity(self, identity_id: str) -> None:
        if self.delete_failures > 0:
            self.delete_failures -= 1
            raise IdentityProviderError("delete failed", 500)
        self.identities.pop(identity_id, None)
        self.deleted.append(identity_id)


class FakePaymentGateway(AbstractPaymentGateway):
    def __init__(self):
        self.sessions: Dict[str, CheckoutSession] = {}
        self.created: List[Tuple[CheckoutSessionCreate, str]] = []
        self.expired: List[str] = []
        self.fail_create = False
        self._ids = itertools.count(1)

    async def create_checkout_session(self, request: CheckoutSessionCreate, idempotency_key: str) -> CheckoutSession:
        if self.fail_create:
            raise PaymentGatewayError("card processor down", 502)
        session_id = f"cs_test_{next(self._ids)}"
        session = CheckoutSession(
            id=session_id,
            url=f"https://checkout.example.com/pay/{session_id}",
            status="open",
            payment_status="unpaid",
            metadata=request.metadata,
        )
        self.sessions[session_id] = session
        self.created.append((request, idempotency_key))
        return session

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSession:
        if session_id not in self.sessions:
            raise PaymentGatewayError("No such checkout.session", 404)
        return self.sessions[session_id]

    async def expire_checkout_session(self, session_id: str) -> None:
        self.expired.append(session_id)
        if session_id in self.sessions:
            self.sessions[session_id] = self.sessions[session_id].model_copy(update={"status": "expired"})

    def mark_paid(self, session_id: str, customer_id: Optional[str] = "cus_test_1") -> None:
        self.sessions[session_id] = self.sessions[session_id].model_copy(
            update={"status": "complete", "payment_status": "paid", "customer_id": customer_id}
        )


class FakeEmailClient(AbstractEmailClient):
    def __init__(self, fail: bool = False):
        self.sent: List[EmailMessage] = []
        self.fail = fail

    async def send(self, message: EmailMessage) -> Optional[str]:
        if self.fail:
            raise EmailDeliveryError("mailbox unavailable", 500)
        self.sent.append(message)
        return f"em_{len(self.sent)}"


async def no_sleep(seconds: float) -> None:
    await asyncio.sleep(0)


def signup_form(**overrides) -> SignupRequest:
    fields = {
        "email": "alice@example.com",
        "password": STRONG_PASSWORD,
        "partner1_name": "Alice",
        "partner2_name": "Bob",
        "wedding_date": "2027-06-12",
        "slug": "alice-bob",
        "theme_id": "classic",
    }
    fields.update(overrides)
    return SignupRequest(**fields)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
async def db_conn():
    conn = open_sqlite_connection(":memory:")
    await init_sqlite_db(conn)
    yield conn
    conn.close()


@pytest.fixture
def tenant_store(db_conn, clock) -> SQLiteTenantStore:
    return SQLiteTenantStore(db_conn, clock=clock)


@pytest.fixture
def reservation_store(db_conn, clock) -> SQLiteReservationStore:
    return SQLiteReservationStore(db_conn, ttl=timedelta(hours=24), clock=clock)


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def payment_gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def email_client() -> FakeEmailClient:
    return FakeEmailClient()


@pytest.fixture
async def dispatcher(email_client):
    dispatcher = NotificationDispatcher(email_client)
    yield dispatcher
    await dispatcher.aclose()


@pytest.fixture
def encryptor() -> FernetEncryptor:
    return FernetEncryptor(generate_fernet_key())


@pytest.fixture
def saga(identity_provider, tenant_store) -> AccountProvisioningSaga:
    return AccountProvisioningSaga(
        identity_provider,
        tenant_store,
        identity_timeout=1.0,
        tenant_timeout=1.0,
        sleep=no_sleep,
    )


ADMIN_KEY = "test-admin-key"


@pytest.fixture
async def client(
    monkeypatch, tenant_store, reservation_store, payment_gateway, identity_provider, dispatcher, encryptor
):
    """In-process API client with every external dependency replaced by a fake."""
    from wedding_signup import dependencies
    from wedding_signup.main import app
    from wedding_signup.reservations.sqlite_reservation_store import get_sqlite_reservation_store
    from wedding_signup.settings import settings
    from wedding_signup.tenants.sqlite_tenant_store import get_sqlite_tenant_store
    from wedding_signup.utils import rate_limit as rate_limit_module

    async def _configured() -> None:
        return None

    monkeypatch.setattr(settings, "admin_api_key", ADMIN_KEY)
    monkeypatch.setattr(rate_limit_module, "_rate_limiter_instance", rate_limit_module.InMemoryRateLimiter())

    app.dependency_overrides[get_sqlite_tenant_store] = lambda: tenant_store
    app.dependency_overrides[get_sqlite_reservation_store] = lambda: reservation_store
    app.dependency_overrides[dependencies.get_payment_gateway] = lambda: payment_gateway
    app.dependency_overrides[dependencies.get_identity_provider] = lambda: identity_provider
    app.dependency_overrides[dependencies.get_notification_dispatcher] = lambda: dispatcher
    app.dependency_overrides[dependencies.get_credential_encryptor] = lambda: encryptor
    app.dependency_overrides[dependencies.require_payment_configured] = _configured
    app.dependency_overrides[dependencies.require_identity_configured] = _configured
    app.dependency_overrides[dependencies.require_credential_vault_configured] = _configured

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()
