# wedding_signup/signup/endpoints.py
import logging
from fastapi import APIRouter, Depends
from typing import Annotated

from .checkout import CheckoutOrchestrator
from .finalization import PaymentFinalizer
from .models import (
    CheckoutStarted,
    FinalizationResult,
    SignupRequest,
    TrialAccountCreated,
    VerifyPaymentRequest,
)
from .saga import AccountProvisioningSaga
from .trial import TrialOrchestrator
from ..dependencies import (
    get_credential_encryptor,
    get_identity_provider,
    get_locale,
    get_notification_dispatcher,
    get_payment_gateway,
    rate_limit,
    require_credential_vault_configured,
    require_identity_configured,
    require_payment_configured,
)
from ..identity.provider import AbstractIdentityProvider
from ..notifications.dispatcher import NotificationDispatcher
from ..payments.gateway import AbstractPaymentGateway
from ..reservations.sqlite_reservation_store import get_sqlite_reservation_store
from ..reservations.storage_interfaces import AbstractReservationStore
from ..settings import settings
from ..tenants.sqlite_tenant_store import get_sqlite_tenant_store
from ..tenants.storage_interfaces import AbstractTenantStore
from ..utils.rate_limit import RateLimits
from ..utils.security import FernetEncryptor

logger = logging.getLogger(__name__)

signup_router = APIRouter(prefix="/api/signup", tags=["Signup"])


async def get_provisioning_saga(
    identity_provider: Annotated[AbstractIdentityProvider, Depends(get_identity_provider)],
    tenant_store: Annotated[AbstractTenantStore, Depends(get_sqlite_tenant_store)],
) -> AccountProvisioningSaga:
    return AccountProvisioningSaga(
        identity_provider,
        tenant_store,
        identity_timeout=settings.external_call_timeout_seconds,
        tenant_timeout=settings.provisioning_timeout_seconds,
        identity_grace_seconds=settings.identity_grace_seconds,
    )


async def get_checkout_orchestrator(
    tenant_store: Annotated[AbstractTenantStore, Depends(get_sqlite_tenant_store)],
    reservation_store: Annotated[AbstractReservationStore, Depends(get_sqlite_reservation_store)],
    payment_gateway: Annotated[AbstractPaymentGateway, Depends(get_payment_gateway)],
    encryptor: Annotated[FernetEncryptor, Depends(get_credential_encryptor)],
) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(
        tenant_store,
        reservation_store,
        payment_gateway,
        encryptor,
        site_url=settings.public_site_url,
        price_cents=settings.product_price_cents,
        currency=settings.payment_currency,
        product_name=settings.product_name,
        product_description=settings.product_description,
        timeout_seconds=settings.external_call_timeout_seconds,
    )


async def get_trial_orchestrator(
    tenant_store: Annotated[AbstractTenantStore, Depends(get_sqlite_tenant_store)],
    reservation_store: Annotated[AbstractReservationStore, Depends(get_sqlite_reservation_store)],
    saga: Annotated[AccountProvisioningSaga, Depends(get_provisioning_saga)],
    dispatcher: Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)],
) -> TrialOrchestrator:
    return TrialOrchestrator(
        tenant_store,
        reservation_store,
        saga,
        dispatcher,
        site_url=settings.public_site_url,
        trial_period_days=settings.trial_period_days,
    )


async def get_payment_finalizer(
    payment_gateway: Annotated[AbstractPaymentGateway, Depends(get_payment_gateway)],
    reservation_store: Annotated[AbstractReservationStore, Depends(get_sqlite_reservation_store)],
    saga: Annotated[AccountProvisioningSaga, Depends(get_provisioning_saga)],
    dispatcher: Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)],
    encryptor: Annotated[FernetEncryptor, Depends(get_credential_encryptor)],
) -> PaymentFinalizer:
    return PaymentFinalizer(
        payment_gateway,
        reservation_store,
        saga,
        dispatcher,
        encryptor,
        site_url=settings.public_site_url,
        paid_period_years=settings.paid_period_years,
        timeout_seconds=settings.external_call_timeout_seconds,
    )


@signup_router.post(
    "/create-checkout",
    response_model=CheckoutStarted,
    dependencies=[
        Depends(rate_limit(RateLimits.SIGNUP)),
        Depends(require_payment_configured),
        Depends(require_credential_vault_configured),
    ],
)
async def create_checkout_endpoint(
    signup_request: SignupRequest,
    orchestrator: Annotated[CheckoutOrchestrator, Depends(get_checkout_orchestrator)],
):
    """Start a paid signup. Returns the hosted checkout session to redirect to."""
    logger.info(f"API: checkout requested for slug '{signup_request.slug}'")
    return await orchestrator.start(signup_request)


@signup_router.post(
    "/create-account",
    response_model=TrialAccountCreated,
    dependencies=[
        Depends(rate_limit(RateLimits.CREATE_ACCOUNT)),
        Depends(require_identity_configured),
    ],
)
async def create_trial_account_endpoint(
    signup_request: SignupRequest,
    orchestrator: Annotated[TrialOrchestrator, Depends(get_trial_orchestrator)],
    locale: Annotated[str, Depends(get_locale)],
):
    """Create a free trial account. The owner can sign in with their password immediately."""
    logger.info(f"API: trial account requested for slug '{signup_request.slug}'")
    return await orchestrator.create_account(signup_request, locale)


@signup_router.post(
    "/verify-payment",
    response_model=FinalizationResult,
    response_model_exclude_none=True,
    dependencies=[
        Depends(rate_limit(RateLimits.VERIFY_PAYMENT)),
        Depends(require_payment_configured),
        Depends(require_identity_configured),
        Depends(require_credential_vault_configured),
    ],
)
async def verify_payment_endpoint(
    verify_request: VerifyPaymentRequest,
    finalizer: Annotated[PaymentFinalizer, Depends(get_payment_finalizer)],
    locale: Annotated[str, Depends(get_locale)],
):
    """Finalize a paid signup once the checkout session reports payment."""
    logger.info(f"API: payment verification requested for session '{verify_request.session_id}'")
    return await finalizer.finalize(verify_request.session_id, locale)
