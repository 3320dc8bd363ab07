# wedding_signup/signup/checkout.py
import asyncio
import logging
from uuid import uuid4

from .errors import ProvisioningFailedError, SlugReservedError, SlugTakenError
from .models import CheckoutStarted, SignupRequest
from .validation import validate_signup
from ..payments.gateway import AbstractPaymentGateway
from ..payments.models import CheckoutSessionCreate
from ..reservations.storage_interfaces import AbstractReservationStore
from ..slugs.models import SlugConflict
from ..tenants.storage_interfaces import AbstractTenantStore
from ..utils.security import FernetEncryptor

logger = logging.getLogger(__name__)


class CheckoutOrchestrator:
    """
    Paid signup: validate, fast-path availability, open a payment session,
    then reserve the slug against that session.

    Exactly one of these holds afterwards: nothing was persisted, or one
    pending reservation exists tied to one payment session.
    """

    def __init__(
        self,
        tenant_store: AbstractTenantStore,
        reservation_store: AbstractReservationStore,
        payment_gateway: AbstractPaymentGateway,
        encryptor: FernetEncryptor,
        site_url: str,
        price_cents: int,
        currency: str,
        product_name: str,
        product_description: str,
        timeout_seconds: float = 10.0,
    ):
        self.tenant_store = tenant_store
        self.reservation_store = reservation_store
        self.payment_gateway = payment_gateway
        self.encryptor = encryptor
        self.site_url = site_url.rstrip("/")
        self.price_cents = price_cents
        self.currency = currency
        self.product_name = product_name
        self.product_description = product_description
        self.timeout_seconds = timeout_seconds

    async def start(self, request: SignupRequest) -> CheckoutStarted:
        signup = validate_signup(request)
        slug = signup.slug

        # Fast path only; the reservation insert below decides
        if await self.tenant_store.get_tenant_by_slug(slug):
            logger.warning(f"Checkout: slug '{slug}' already belongs to a wedding.")
            raise SlugTakenError()
        if await self.reservation_store.get_active_by_slug(slug):
            logger.warning(f"Checkout: slug '{slug}' is held by another pending signup.")
            raise SlugReservedError()

        sealed = self.encryptor.encrypt(signup.password.get_secret_value())
        if sealed is None:
            logger.error("Checkout: credential could not be sealed; refusing to start checkout.")
            raise ProvisioningFailedError("Failed to prepare checkout")

        session_request = CheckoutSessionCreate(
            amount_cents=self.price_cents,
            currency=self.currency,
            product_name=self.product_name,
            product_description=self.product_description,
            customer_email=signup.email,
            success_url=f"{self.site_url}/signup/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{self.site_url}/signup/cancel",
            metadata={"email": signup.email, "slug": slug, "type": "new_signup"},
        )
        # One key per logical request, reused by every transport retry
        idempotency_key = f"checkout-{uuid4()}"
        try:
            session = await asyncio.wait_for(
                self.payment_gateway.create_checkout_session(session_request, idempotency_key),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(f"Checkout: payment session creation timed out for slug '{slug}'.")
            raise ProvisioningFailedError("Failed to prepare checkout")
        except Exception as e:
            logger.error(f"Checkout: payment session creation failed for slug '{slug}': {e}", exc_info=True)
            raise ProvisioningFailedError("Failed to prepare checkout")

        try:
            result = await asyncio.wait_for(
                self.reservation_store.try_reserve(slug, session.id, signup.reservation_fields(sealed)),
                timeout=self.timeout_seconds,
            )
        except Exception as e:
            logger.error(f"Checkout: reservation write failed for slug '{slug}': {e!r}", exc_info=True)
            await self._abandon_session(session.id)
            raise ProvisioningFailedError("Failed to prepare checkout")

        if isinstance(result, SlugConflict):
            logger.warning(
                f"Checkout: lost slug '{slug}' to a {result.holder.value}; abandoning session '{session.id}'."
            )
            await self._abandon_session(session.id)
            if result.permanent:
                raise SlugTakenError()
            raise SlugReservedError()

        logger.info(f"Checkout: session '{session.id}' holds slug '{slug}' until {result.expires_at.isoformat()}.")
        return CheckoutStarted(session_id=session.id, url=session.url)

    async def _abandon_session(self, session_id: str) -> None:
        """Best-effort: close a session that has no reservation so it cannot be paid."""
        try:
            await asyncio.wait_for(
                self.payment_gateway.expire_checkout_session(session_id),
                timeout=self.timeout_seconds,
            )
        except Exception as e:
            logger.error(
                f"Checkout: could not expire abandoned session '{session_id}'; it will lapse on its own: {e!r}"
            )
