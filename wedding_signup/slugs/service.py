# wedding_signup/slugs/service.py
import logging

from .models import SlugAvailability
from .policy import is_reserved, normalize, suggest_alternatives, validate_format
from ..reservations.storage_interfaces import AbstractReservationStore
from ..tenants.storage_interfaces import AbstractTenantStore

logger = logging.getLogger(__name__)


class SlugAvailabilityService:
    """
    Advisory availability check for the signup wizard.

    The answer can be stale by the time the user submits; the atomic claim
    made during signup is what actually decides.
    """

    def __init__(self, tenant_store: AbstractTenantStore, reservation_store: AbstractReservationStore):
        self.tenant_store = tenant_store
        self.reservation_store = reservation_store

    async def check(self, raw_slug: str) -> SlugAvailability:
        slug = normalize(raw_slug)
        if not validate_format(slug):
            return SlugAvailability(
                available=False,
                reason="invalid_format",
                message="Slug must be 3-50 characters, lowercase letters, numbers, and hyphens only.",
            )
        if is_reserved(slug):
            return SlugAvailability(
                available=False,
                reason="reserved",
                message="This URL is reserved and cannot be used.",
                suggestions=suggest_alternatives(slug),
            )
        if await self.tenant_store.get_tenant_by_slug(slug):
            return SlugAvailability(
                available=False,
                reason="taken",
                message="This URL is already in use.",
                suggestions=suggest_alternatives(slug),
            )
        if await self.reservation_store.get_active_by_slug(slug):
            return SlugAvailability(
                available=False,
                reason="pending",
                message="This URL is being reserved by another signup. Try again later or choose another.",
                suggestions=suggest_alternatives(slug),
            )
        return SlugAvailability(available=True)
