# wedding_signup/reservations/endpoints.py
import logging
from fastapi import APIRouter, Depends, Query
from typing import List, Annotated

from .models import ReservationSummary, ExpireStaleResult
from .service import ReservationService
from .sqlite_reservation_store import get_sqlite_reservation_store
from .storage_interfaces import AbstractReservationStore
from ..dependencies import get_admin_api_key

logger = logging.getLogger(__name__)

# Admin router for reservation inspection - requires admin API key authentication
reservations_admin_router = APIRouter(
    prefix="/admin/reservations",
    tags=["Admin - Reservations"],
    dependencies=[Depends(get_admin_api_key)]
)


async def get_reservation_service(
    reservation_store: Annotated[AbstractReservationStore, Depends(get_sqlite_reservation_store)]
) -> ReservationService:
    """Factory function to create ReservationService with injected store dependency."""
    return ReservationService(reservation_store)


@reservations_admin_router.get("/", response_model=List[ReservationSummary])
@reservations_admin_router.get("", response_model=List[ReservationSummary], include_in_schema=False)
async def list_reservations_endpoint(
    service: Annotated[ReservationService, Depends(get_reservation_service)],
    skip: Annotated[int, Query(ge=0, description="Number of reservations to skip.")] = 0,
    limit: Annotated[int, Query(ge=1, le=100, description="Maximum number of reservations to return.")] = 100
):
    """List reservations, newest first. Sealed credentials are never returned."""
    reservations = await service.list_reservations(skip=skip, limit=limit)
    return [ReservationSummary.model_validate(r.model_dump()) for r in reservations]


@reservations_admin_router.post("/expire-stale", response_model=ExpireStaleResult)
async def expire_stale_reservations_endpoint(
    service: Annotated[ReservationService, Depends(get_reservation_service)]
):
    logger.info("API: Admin requested stale reservation cleanup")
    expired = await service.expire_stale()
    return ExpireStaleResult(expired_count=expired)
