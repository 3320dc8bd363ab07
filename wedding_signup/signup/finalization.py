# wedding_signup/signup/finalization.py
import asyncio
import logging
from pydantic import SecretStr
from datetime import datetime
from typing import Callable, Optional

from .errors import (
    AccountExistsError,
    MissingSessionIdError,
    PaymentNotCompletedError,
    ProvisioningFailedError,
    ReservationNotFoundError,
    SlugConflictAfterPaymentError,
)
from .models import FinalizationResult
from .saga import AccountProvisioningSaga, ProvisioningRequest, ProvisioningState
from ..notifications.dispatcher import NotificationDispatcher
from ..notifications.models import WelcomeContext
from ..payments.gateway import AbstractPaymentGateway
from ..reservations.models import PendingReservation, ReservationStatus
from ..reservations.storage_interfaces import AbstractReservationStore
from ..storage.sqlite_base import utc_now
from ..tenants.models import SubscriptionStatus
from ..utils.security import FernetEncryptor

logger = logging.getLogger(__name__)


def add_years(value: datetime, years: int) -> datetime:
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        # Feb 29 in a non-leap target year
        return value.replace(year=value.year + years, day=28)


def _already_completed(reservation: PendingReservation) -> FinalizationResult:
    return FinalizationResult(
        slug=reservation.slug,
        redirect=f"/{reservation.slug}/admin",
        already_completed=True,
        message="Your account has already been created. Please sign in.",
    )


class PaymentFinalizer:
    """
    Turns a paid checkout session into a wedding.

    Safe to call repeatedly for the same session: once the reservation is
    completed every later call reports alreadyCompleted.
    """

    def __init__(
        self,
        payment_gateway: AbstractPaymentGateway,
        reservation_store: AbstractReservationStore,
        saga: AccountProvisioningSaga,
        dispatcher: NotificationDispatcher,
        encryptor: FernetEncryptor,
        site_url: str,
        paid_period_years: int = 2,
        timeout_seconds: float = 10.0,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.payment_gateway = payment_gateway
        self.reservation_store = reservation_store
        self.saga = saga
        self.dispatcher = dispatcher
        self.encryptor = encryptor
        self.site_url = site_url
        self.paid_period_years = paid_period_years
        self.timeout_seconds = timeout_seconds
        self._clock = clock

    async def finalize(self, session_id: Optional[str], locale: str) -> FinalizationResult:
        if not session_id or not session_id.strip():
            raise MissingSessionIdError()
        session_id = session_id.strip()

        try:
            session = await asyncio.wait_for(
                self.payment_gateway.retrieve_checkout_session(session_id),
                timeout=self.timeout_seconds,
            )
        except Exception as e:
            logger.error(f"Finalize: could not retrieve session '{session_id}': {e!r}", exc_info=True)
            raise ProvisioningFailedError()

        if not session.is_paid:
            logger.warning(f"Finalize: session '{session_id}' is not paid (status: {session.payment_status}).")
            raise PaymentNotCompletedError()

        reservation = await self.reservation_store.get_by_session_id(session_id)
        if reservation is None:
            logger.error(f"Finalize: paid session '{session_id}' has no reservation.")
            raise ReservationNotFoundError()
        if reservation.status == ReservationStatus.COMPLETED:
            return _already_completed(reservation)

        credential = self.encryptor.decrypt(reservation.sealed_credential) if reservation.sealed_credential else None
        if credential is None:
            logger.error(
                f"Finalize: reservation '{reservation.id}' for paid session '{session_id}' "
                f"has no usable credential ({reservation.status.value}); needs support follow-up."
            )
            raise ProvisioningFailedError()

        outcome = await self.saga.run(
            ProvisioningRequest(
                email=reservation.email,
                credential=SecretStr(credential),
                partner1_name=reservation.partner1_name,
                partner2_name=reservation.partner2_name,
                wedding_date=reservation.wedding_date,
                slug=reservation.slug,
                theme_id=reservation.theme_id,
                subscription_status=SubscriptionStatus.ACTIVE,
                subscription_end_date=add_years(self._clock(), self.paid_period_years),
                payment_customer_id=session.customer_id,
                from_reservation_id=reservation.id,
            )
        )

        if not outcome.succeeded:
            if outcome.identity_already_exists:
                # A concurrent call for the same session may have finished first
                current = await self.reservation_store.get_by_session_id(session_id)
                if current and current.status == ReservationStatus.COMPLETED:
                    return _already_completed(current)
                raise AccountExistsError(
                    message="An account with this email already exists. Please contact support.",
                    code="ACCOUNT_EXISTS_OR_ERROR",
                )
            if outcome.state == ProvisioningState.ROLLED_BACK and outcome.slug_conflict is not None:
                logger.error(f"Finalize: slug '{reservation.slug}' lost after payment for session '{session_id}'.")
                raise SlugConflictAfterPaymentError()
            logger.error(
                f"Finalize: provisioning for session '{session_id}' ended in "
                f"{outcome.state.value} ({outcome.failure_reason})."
            )
            raise ProvisioningFailedError()

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
            logger.error(f"Finalize: welcome email dispatch failed for '{account.slug}': {e}", exc_info=True)

        return FinalizationResult(slug=account.slug, redirect=f"/{account.slug}/admin")
