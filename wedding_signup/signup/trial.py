# wedding_signup/signup/trial.py
import logging
from datetime import datetime, timedelta
from typing import Callable

from .errors import AccountExistsError, ProvisioningFailedError, SlugReservedError, SlugTakenError
from .models import SignupRequest, TrialAccountCreated
from .saga import AccountProvisioningSaga, ProvisioningRequest, ProvisioningState, SagaOutcome
from .validation import validate_signup
from ..notifications.dispatcher import NotificationDispatcher
from ..notifications.models import WelcomeContext
from ..reservations.storage_interfaces import AbstractReservationStore
from ..storage.sqlite_base import utc_now
from ..tenants.models import SubscriptionStatus
from ..tenants.storage_interfaces import AbstractTenantStore

logger = logging.getLogger(__name__)


def raise_for_failed_outcome(outcome: SagaOutcome) -> None:
    """Map a failed trial provisioning outcome to the response the caller sees."""
    if outcome.identity_already_exists:
        raise AccountExistsError()
    if outcome.state == ProvisioningState.ROLLED_BACK and outcome.slug_conflict is not None:
        if outcome.slug_conflict.permanent:
            raise SlugTakenError()
        raise SlugReservedError()
    raise ProvisioningFailedError()


class TrialOrchestrator:
    """Free trial signup: identity and tenant created together or not at all."""

    def __init__(
        self,
        tenant_store: AbstractTenantStore,
        reservation_store: AbstractReservationStore,
        saga: AccountProvisioningSaga,
        dispatcher: NotificationDispatcher,
        site_url: str,
        trial_period_days: int = 30,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.tenant_store = tenant_store
        self.reservation_store = reservation_store
        self.saga = saga
        self.dispatcher = dispatcher
        self.site_url = site_url
        self.trial_period_days = trial_period_days
        self._clock = clock

    async def create_account(self, request: SignupRequest, locale: str) -> TrialAccountCreated:
        signup = validate_signup(request)

        if await self.tenant_store.get_tenant_by_slug(signup.slug):
            logger.warning(f"Trial: slug '{signup.slug}' already belongs to a wedding.")
            raise SlugTakenError()
        if await self.reservation_store.get_active_by_slug(signup.slug):
            logger.warning(f"Trial: slug '{signup.slug}' is held by a pending paid signup.")
            raise SlugReservedError()

        outcome = await self.saga.run(
            ProvisioningRequest(
                email=signup.email,
                credential=signup.password,
                partner1_name=signup.partner1_name,
                partner2_name=signup.partner2_name,
                wedding_date=signup.wedding_date,
                slug=signup.slug,
                theme_id=signup.theme_id,
                subscription_status=SubscriptionStatus.TRIAL,
                subscription_end_date=self._clock() + timedelta(days=self.trial_period_days),
            )
        )
        if not outcome.succeeded:
            logger.warning(f"Trial: provisioning for '{signup.slug}' ended in {outcome.state.value} ({outcome.failure_reason}).")
            raise_for_failed_outcome(outcome)

        account = outcome.account
        try:
            self.dispatcher.send(
                account.email,
                account.slug,
                locale,
                WelcomeContext(
                    couple_names=account.couple_names,
                    access_code=account.access_code,
                    site_url=self.site_url,
                ),
            )
        except Exception as e:
            logger.error(f"Trial: welcome email dispatch failed for '{account.slug}': {e}", exc_info=True)

        return TrialAccountCreated(slug=account.slug, email=account.email)
