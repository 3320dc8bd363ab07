# wedding_signup/signup/saga.py
"""
Two-step account provisioning with explicit compensation.

    NOT_STARTED --identity--> IDENTITY_CREATED --tenant--> TENANT_CREATED
                                     |
                                     +--rollback--> ROLLED_BACK
                                     +--rollback fails--> COMPENSATION_FAILED

An identity create that times out or goes unanswered may still have
committed at the provider. The saga keeps waiting briefly for a late reply,
then looks the identity up by email and rolls back whatever it finds.

The saga never raises. Every path ends in a SagaOutcome the caller maps to
a response.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Optional

from pydantic import SecretStr

from ..identity.errors import IdentityAlreadyExistsError, IdentityOutcomeUnknownError
from ..identity.models import IdentityMetadata, OwnerIdentity
from ..identity.provider import AbstractIdentityProvider
from ..slugs.models import SlugConflict
from ..tenants.models import AccountCreate, AccountRecord, SubscriptionStatus
from ..tenants.storage_interfaces import AbstractTenantStore

logger = logging.getLogger(__name__)


class ProvisioningState(str, Enum):
    NOT_STARTED = "not_started"
    IDENTITY_CREATED = "identity_created"
    TENANT_CREATED = "tenant_created"
    ROLLED_BACK = "rolled_back"
    COMPENSATION_FAILED = "compensation_failed"


@dataclass
class ProvisioningRequest:
    email: str
    credential: SecretStr
    partner1_name: str
    partner2_name: str
    wedding_date: Optional[str]
    slug: str
    theme_id: str
    subscription_status: SubscriptionStatus
    subscription_end_date: datetime
    payment_customer_id: Optional[str] = None
    from_reservation_id: Optional[str] = None

    @property
    def couple_names(self) -> str:
        return f"{self.partner1_name} & {self.partner2_name}"

    def account_for(self, identity: OwnerIdentity) -> AccountCreate:
        return AccountCreate(
            identity_id=identity.id,
            email=self.email,
            partner1_name=self.partner1_name,
            partner2_name=self.partner2_name,
            wedding_date=self.wedding_date,
            slug=self.slug,
            theme_id=self.theme_id,
            subscription_status=self.subscription_status,
            subscription_end_date=self.subscription_end_date,
            payment_customer_id=self.payment_customer_id,
            from_reservation_id=self.from_reservation_id,
        )


@dataclass
class SagaOutcome:
    state: ProvisioningState
    account: Optional[AccountRecord] = None
    identity_id: Optional[str] = None
    identity_already_exists: bool = False
    slug_conflict: Optional[SlugConflict] = None
    failure_reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state == ProvisioningState.TENANT_CREATED


class AccountProvisioningSaga:
    """Creates an owner identity, then the tenant, deleting the identity if the tenant step fails."""

    def __init__(
        self,
        identity_provider: AbstractIdentityProvider,
        tenant_store: AbstractTenantStore,
        identity_timeout: float = 10.0,
        tenant_timeout: float = 10.0,
        identity_grace_seconds: float = 5.0,
        compensation_attempts: int = 3,
        compensation_backoff_seconds: float = 0.1,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.identity_provider = identity_provider
        self.tenant_store = tenant_store
        self.identity_timeout = identity_timeout
        self.tenant_timeout = tenant_timeout
        self.identity_grace_seconds = identity_grace_seconds
        self.compensation_attempts = compensation_attempts
        self.compensation_backoff_seconds = compensation_backoff_seconds
        self._sleep = sleep

    async def run(self, request: ProvisioningRequest) -> SagaOutcome:
        # Step 1: identity. Shielded so a reply that arrives after the timeout is not lost.
        identity_task = asyncio.ensure_future(
            self.identity_provider.create_identity(
                request.email,
                request.credential.get_secret_value(),
                IdentityMetadata(full_name=request.couple_names),
            )
        )
        try:
            identity = await asyncio.wait_for(asyncio.shield(identity_task), timeout=self.identity_timeout)
        except IdentityAlreadyExistsError:
            logger.warning(f"Saga: identity already registered for slug '{request.slug}'.")
            return SagaOutcome(
                state=ProvisioningState.NOT_STARTED,
                identity_already_exists=True,
                failure_reason="identity_exists",
            )
        except asyncio.TimeoutError:
            logger.error(
                f"Saga: identity creation timed out after {self.identity_timeout}s for slug '{request.slug}'; "
                f"waiting up to {self.identity_grace_seconds}s for a late reply."
            )
            return await self._recover_late_identity(request, identity_task)
        except IdentityOutcomeUnknownError as e:
            logger.error(f"Saga: identity creation for slug '{request.slug}' went unanswered: {e}")
            return await self._resolve_unconfirmed_identity(request, failure_reason="identity_unanswered")
        except asyncio.CancelledError:
            identity_task.cancel()
            raise
        except Exception as e:
            logger.error(f"Saga: identity creation failed for slug '{request.slug}': {e}", exc_info=True)
            return SagaOutcome(state=ProvisioningState.NOT_STARTED, failure_reason="identity_error")

        logger.info(f"Saga: {ProvisioningState.IDENTITY_CREATED.value} '{identity.id}' for slug '{request.slug}'.")

        # Step 2: tenant. Any failure, including a timeout, compensates.
        try:
            result = await asyncio.wait_for(
                self.tenant_store.create_account(request.account_for(identity)),
                timeout=self.tenant_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Saga: tenant creation timed out after {self.tenant_timeout}s for slug '{request.slug}'.")
            return await self._compensate(identity, failure_reason="tenant_timeout")
        except Exception as e:
            logger.error(f"Saga: tenant creation failed for slug '{request.slug}': {e}", exc_info=True)
            return await self._compensate(identity, failure_reason="tenant_error")

        if isinstance(result, SlugConflict):
            logger.warning(f"Saga: slug '{request.slug}' lost to a {result.holder.value} at tenant creation.")
            return await self._compensate(identity, failure_reason="slug_conflict", slug_conflict=result)

        logger.info(f"Saga: {ProvisioningState.TENANT_CREATED.value} '{result.tenant_id}' for slug '{request.slug}'.")
        return SagaOutcome(
            state=ProvisioningState.TENANT_CREATED,
            account=result,
            identity_id=identity.id,
        )

    async def _recover_late_identity(self, request: ProvisioningRequest, identity_task: asyncio.Future) -> SagaOutcome:
        failure_reason = "identity_timeout"
        done, _ = await asyncio.wait({identity_task}, timeout=self.identity_grace_seconds)
        if not done:
            identity_task.cancel()
            await asyncio.gather(identity_task, return_exceptions=True)
            return await self._resolve_unconfirmed_identity(request, failure_reason)

        try:
            identity = identity_task.result()
        except IdentityAlreadyExistsError:
            return SagaOutcome(
                state=ProvisioningState.NOT_STARTED,
                identity_already_exists=True,
                failure_reason="identity_exists",
            )
        except IdentityOutcomeUnknownError:
            return await self._resolve_unconfirmed_identity(request, failure_reason)
        except Exception as e:
            logger.error(f"Saga: late identity reply for slug '{request.slug}' was a failure: {e!r}")
            return SagaOutcome(state=ProvisioningState.NOT_STARTED, failure_reason=failure_reason)

        logger.warning(f"Saga: identity '{identity.id}' arrived after the timeout for slug '{request.slug}'; rolling it back.")
        return await self._compensate(identity, failure_reason=failure_reason)

    async def _resolve_unconfirmed_identity(self, request: ProvisioningRequest, failure_reason: str) -> SagaOutcome:
        """Check whether an unanswered create committed an identity, and roll it back if so."""
        try:
            identity = await asyncio.wait_for(
                self.identity_provider.find_identity_by_email(request.email),
                timeout=self.identity_timeout,
            )
            owned = identity is not None and await asyncio.wait_for(
                self.tenant_store.owner_exists(identity.id),
                timeout=self.tenant_timeout,
            )
        except Exception as e:
            logger.critical(
                f"Saga: POSSIBLY ORPHANED IDENTITY for slug '{request.slug}' ({request.email}); "
                f"creation went unanswered ({failure_reason}) and the lookup failed: {e!r}. Manual check required."
            )
            return SagaOutcome(state=ProvisioningState.COMPENSATION_FAILED, failure_reason=failure_reason)

        if identity is None:
            logger.info(f"Saga: no identity was committed for slug '{request.slug}'; nothing to undo.")
            return SagaOutcome(state=ProvisioningState.NOT_STARTED, failure_reason=failure_reason)
        if owned:
            # Belongs to a finished account, not to this attempt
            logger.warning(f"Saga: identity '{identity.id}' already owns a wedding; email is registered.")
            return SagaOutcome(
                state=ProvisioningState.NOT_STARTED,
                identity_already_exists=True,
                failure_reason="identity_exists",
            )

        logger.warning(f"Saga: unanswered creation committed identity '{identity.id}' for slug '{request.slug}'; rolling it back.")
        return await self._compensate(identity, failure_reason=failure_reason)

    async def _compensate(
        self,
        identity: OwnerIdentity,
        failure_reason: str,
        slug_conflict: Optional[SlugConflict] = None,
    ) -> SagaOutcome:
        for attempt in range(1, self.compensation_attempts + 1):
            try:
                await asyncio.wait_for(
                    self.identity_provider.delete_identity(identity.id),
                    timeout=self.identity_timeout,
                )
            except Exception as e:
                logger.error(
                    f"Saga: compensation attempt {attempt}/{self.compensation_attempts} "
                    f"failed for identity '{identity.id}': {e!r}"
                )
                if attempt < self.compensation_attempts:
                    await self._sleep(self.compensation_backoff_seconds * attempt)
                continue

            logger.info(f"Saga: {ProvisioningState.ROLLED_BACK.value}, identity '{identity.id}' deleted.")
            return SagaOutcome(
                state=ProvisioningState.ROLLED_BACK,
                identity_id=identity.id,
                slug_conflict=slug_conflict,
                failure_reason=failure_reason,
            )

        logger.critical(
            f"Saga: ORPHANED IDENTITY '{identity.id}' ({identity.email}) has no tenant; "
            f"compensation failed after {self.compensation_attempts} attempts. Manual cleanup required."
        )
        return SagaOutcome(
            state=ProvisioningState.COMPENSATION_FAILED,
            identity_id=identity.id,
            slug_conflict=slug_conflict,
            failure_reason=failure_reason,
        )
