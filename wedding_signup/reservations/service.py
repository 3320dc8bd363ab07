# wedding_signup/reservations/service.py
import asyncio
import logging
from typing import List, Optional

from .models import PendingReservation, ReservationFields, ReserveResult
from .storage_interfaces import AbstractReservationStore

logger = logging.getLogger(__name__)


class ReservationService:
    """
    Service layer for pending slug reservations.

    Wraps the reservation store for the checkout flow, payment finalization,
    the admin API and the periodic cleanup task.
    """

    def __init__(self, reservation_store: AbstractReservationStore):
        self.reservation_store = reservation_store

    async def reserve(self, slug: str, session_id: str, fields: ReservationFields) -> ReserveResult:
        logger.info(f"Service: Reserving slug '{slug}' for payment session '{session_id}'")
        return await self.reservation_store.try_reserve(slug, session_id, fields)

    async def get_by_session_id(self, session_id: str) -> Optional[PendingReservation]:
        return await self.reservation_store.get_by_session_id(session_id)

    async def get_active_by_slug(self, slug: str) -> Optional[PendingReservation]:
        return await self.reservation_store.get_active_by_slug(slug)

    async def list_reservations(self, skip: int = 0, limit: int = 100) -> List[PendingReservation]:
        logger.info(f"Service: Listing reservations with skip: {skip}, limit: {limit}")
        return await self.reservation_store.list_reservations(skip=skip, limit=limit)

    async def expire_stale(self) -> int:
        """
        Expire reservations past their TTL.

        Correctness never depends on this running; it only keeps the table
        tidy and drops sealed credentials that can no longer be used.
        """
        expired = await self.reservation_store.expire_stale()
        logger.info(f"Service: Expired {expired} stale reservation(s)")
        return expired


async def run_cleanup_loop(service: ReservationService, interval_seconds: float) -> None:
    """Expire stale reservations every interval until cancelled."""
    logger.info(f"Reservation cleanup loop started (every {interval_seconds}s).")
    while True:
        try:
            await service.expire_stale()
        except Exception as e:
            # Keep the loop alive; the next pass retries
            logger.error(f"Reservation cleanup pass failed: {e}", exc_info=True)
        await asyncio.sleep(interval_seconds)
