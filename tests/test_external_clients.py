# tests/test_external_clients.py
import json

import httpx
import pytest
import stripe

from wedding_signup.identity.errors import IdentityAlreadyExistsError, IdentityOutcomeUnknownError
from wedding_signup.identity.models import IdentityMetadata
from wedding_signup.identity.provider import SupabaseIdentityProvider
from wedding_signup.notifications.email_client import EmailDeliveryError, ResendEmailClient
from wedding_signup.notifications.models import EmailMessage
from wedding_signup.payments.errors import PaymentGatewayError
from wedding_signup.payments.gateway import StripePaymentGateway
from wedding_signup.payments.models import CheckoutSessionCreate
from wedding_signup.utils.retry import retry


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def flaky_handler(responses):
    """Replays a scripted sequence: exception classes are raised, anything else is returned."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        step = responses[min(len(calls), len(responses)) - 1]
        if isinstance(step, type) and issubclass(step, Exception):
            raise step("scripted failure", request=request)
        return step

    return handler, calls


CHECKOUT_REQUEST = CheckoutSessionCreate(
    amount_cents=19900,
    currency="eur",
    product_name="Wedding Photo Platform",
    product_description="Everything for the big day",
    customer_email="alice@example.com",
    success_url="https://weddings.example.com/signup/success",
    cancel_url="https://weddings.example.com/signup/cancel",
    metadata={"slug": "alice-bob"},
)


async def test_retry_gives_up_after_attempts():
    attempts = []

    async def always_fails():
        attempts.append(1)
        raise httpx.ConnectError("down")

    with pytest.raises(httpx.ConnectError):
        await retry(always_fails, attempts=3, base_ms=0, jitter_ms=0)
    assert len(attempts) == 3


async def test_retry_does_not_retry_other_errors():
    attempts = []

    async def bad_input():
        attempts.append(1)
        raise ValueError("nope")

    with pytest.raises(ValueError):
        await retry(bad_input, attempts=3, base_ms=0, jitter_ms=0)
    assert len(attempts) == 1


def stripe_session(**values):
    return stripe.checkout.Session.construct_from(values, "sk_test_123")


async def test_checkout_creation_sends_idempotency_key_and_line_item(monkeypatch):
    calls = []

    def fake_create(**kwargs):
        calls.append(kwargs)
        return stripe_session(id="cs_1", url="https://pay/cs_1", payment_status="unpaid", metadata={"slug": "alice-bob"})

    monkeypatch.setattr(stripe, "max_network_retries", stripe.max_network_retries)
    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    gateway = StripePaymentGateway("sk_test_123", max_network_retries=2)
    session = await gateway.create_checkout_session(CHECKOUT_REQUEST, "checkout-abc")

    assert session.id == "cs_1"
    assert not session.is_paid
    assert session.metadata == {"slug": "alice-bob"}
    assert stripe.max_network_retries == 2
    sent = calls[0]
    assert sent["idempotency_key"] == "checkout-abc"
    assert sent["api_key"] == "sk_test_123"
    assert sent["line_items"][0]["price_data"]["unit_amount"] == 19900
    assert sent["metadata"] == {"slug": "alice-bob"}


async def test_provider_error_message_is_surfaced(monkeypatch):
    def fake_create(**kwargs):
        raise stripe.InvalidRequestError("Invalid currency", "currency", http_status=400)

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    gateway = StripePaymentGateway("sk_test_123")
    with pytest.raises(PaymentGatewayError) as exc_info:
        await gateway.create_checkout_session(CHECKOUT_REQUEST, "checkout-abc")
    assert exc_info.value.status_code == 400
    assert "Invalid currency" in str(exc_info.value)


async def test_retrieve_reads_payment_state_and_customer(monkeypatch):
    retrieved = []

    def fake_retrieve(session_id, **kwargs):
        retrieved.append(session_id)
        return stripe_session(
            id=session_id,
            status="complete",
            payment_status="paid",
            customer={"id": "cus_9", "object": "customer"},
            metadata={"slug": "alice-bob"},
        )

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", fake_retrieve)
    session = await StripePaymentGateway("sk_test_123").retrieve_checkout_session("cs_1")
    assert session.is_paid
    assert session.customer_id == "cus_9"
    assert retrieved == ["cs_1"]


async def test_expire_uses_a_stable_idempotency_key(monkeypatch):
    calls = []

    def fake_expire(session_id, **kwargs):
        calls.append((session_id, kwargs["idempotency_key"]))
        return stripe_session(id=session_id, status="expired")

    monkeypatch.setattr(stripe.checkout.Session, "expire", fake_expire)
    gateway = StripePaymentGateway("sk_test_123")
    await gateway.expire_checkout_session("cs_1")
    await gateway.expire_checkout_session("cs_1")
    assert calls == [("cs_1", "expire-cs_1"), ("cs_1", "expire-cs_1")]


async def test_identity_create_sends_confirmed_user():
    handler, calls = flaky_handler([httpx.Response(200, json={"id": "uid-1", "email": "alice@example.com"})])
    async with mock_client(handler) as client:
        provider = SupabaseIdentityProvider(client, "https://auth.example.com/", "service-key")
        identity = await provider.create_identity(
            "alice@example.com", "Secret123", IdentityMetadata(full_name="Alice & Bob")
        )
    assert identity.id == "uid-1"
    body = json.loads(calls[0].content)
    assert body["email_confirm"] is True
    assert body["user_metadata"] == {"full_name": "Alice & Bob"}
    assert str(calls[0].url) == "https://auth.example.com/auth/v1/admin/users"
    assert calls[0].headers["apikey"] == "service-key"


async def test_identity_create_detects_existing_email():
    handler, _ = flaky_handler([
        httpx.Response(422, json={"code": 422, "error_code": "email_exists", "msg": "Email address already exists"}),
    ])
    async with mock_client(handler) as client:
        provider = SupabaseIdentityProvider(client, "https://auth.example.com", "service-key")
        with pytest.raises(IdentityAlreadyExistsError):
            await provider.create_identity("alice@example.com", "Secret123", IdentityMetadata(full_name="A & B"))


async def test_identity_create_is_not_replayed_after_a_read_timeout():
    handler, calls = flaky_handler([httpx.ReadTimeout])
    async with mock_client(handler) as client:
        provider = SupabaseIdentityProvider(client, "https://auth.example.com", "service-key")
        with pytest.raises(IdentityOutcomeUnknownError):
            await provider.create_identity("alice@example.com", "Secret123", IdentityMetadata(full_name="A & B"))
    assert len(calls) == 1


async def test_identity_lookup_matches_the_exact_email():
    handler, calls = flaky_handler([
        httpx.Response(200, json={"users": [
            {"id": "uid-2", "email": "malice@example.com"},
            {"id": "uid-1", "email": "Alice@Example.com"},
        ]}),
    ])
    async with mock_client(handler) as client:
        provider = SupabaseIdentityProvider(client, "https://auth.example.com", "service-key")
        identity = await provider.find_identity_by_email("alice@example.com")
    assert identity.id == "uid-1"
    assert calls[0].method == "GET"
    assert calls[0].url.params["filter"] == "alice@example.com"


async def test_identity_lookup_returns_none_when_absent():
    handler, _ = flaky_handler([httpx.Response(200, json={"users": []})])
    async with mock_client(handler) as client:
        provider = SupabaseIdentityProvider(client, "https://auth.example.com", "service-key")
        assert await provider.find_identity_by_email("alice@example.com") is None


async def test_identity_delete_treats_missing_user_as_deleted():
    handler, calls = flaky_handler([httpx.ReadTimeout, httpx.Response(404, json={"msg": "User not found"})])
    async with mock_client(handler) as client:
        provider = SupabaseIdentityProvider(client, "https://auth.example.com", "service-key")
        await provider.delete_identity("uid-1")
    assert len(calls) == 2
    assert calls[-1].method == "DELETE"
    assert calls[-1].url.path == "/auth/v1/admin/users/uid-1"


async def test_email_client_posts_message():
    handler, calls = flaky_handler([httpx.Response(200, json={"id": "em_1"})])
    async with mock_client(handler) as client:
        email_client = ResendEmailClient(client, "re_key", "Weddings <noreply@example.com>")
        message_id = await email_client.send(EmailMessage(to="alice@example.com", subject="Hi", html="<p>Hi</p>"))
    assert message_id == "em_1"
    body = json.loads(calls[0].content)
    assert body["to"] == ["alice@example.com"]
    assert body["from"] == "Weddings <noreply@example.com>"


async def test_email_client_raises_on_rejection():
    handler, _ = flaky_handler([httpx.Response(422, json={"message": "Invalid from"})])
    async with mock_client(handler) as client:
        email_client = ResendEmailClient(client, "re_key", "bad")
        with pytest.raises(EmailDeliveryError) as exc_info:
            await email_client.send(EmailMessage(to="alice@example.com", subject="Hi", html="<p>Hi</p>"))
    assert exc_info.value.status_code == 422
