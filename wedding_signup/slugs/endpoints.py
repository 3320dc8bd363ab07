# wedding_signup/slugs/endpoints.py
import logging
from fastapi import APIRouter, Depends, Query, status
from typing import Annotated, Optional

from .models import SlugAvailability
from .service import SlugAvailabilityService
from ..dependencies import rate_limit
from ..reservations.sqlite_reservation_store import get_sqlite_reservation_store
from ..reservations.storage_interfaces import AbstractReservationStore
from ..signup.errors import SignupError
from ..tenants.sqlite_tenant_store import get_sqlite_tenant_store
from ..tenants.storage_interfaces import AbstractTenantStore
from ..utils.rate_limit import RateLimits

logger = logging.getLogger(__name__)

weddings_router = APIRouter(prefix="/api/weddings", tags=["Weddings"])


async def get_slug_availability_service(
    tenant_store: Annotated[AbstractTenantStore, Depends(get_sqlite_tenant_store)],
    reservation_store: Annotated[AbstractReservationStore, Depends(get_sqlite_reservation_store)],
) -> SlugAvailabilityService:
    return SlugAvailabilityService(tenant_store, reservation_store)


@weddings_router.get(
    "/check-slug",
    response_model=SlugAvailability,
    response_model_exclude_none=True,
    dependencies=[Depends(rate_limit(RateLimits.SLUG_CHECK))],
)
async def check_slug_endpoint(
    service: Annotated[SlugAvailabilityService, Depends(get_slug_availability_service)],
    slug: Annotated[Optional[str], Query(description="Slug to check")] = None,
):
    if not slug or not slug.strip():
        raise SignupError(
            status.HTTP_400_BAD_REQUEST,
            "Missing slug parameter",
            "A slug query parameter is required.",
            extra={"available": False},
        )
    return await service.check(slug)
