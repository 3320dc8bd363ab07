# wedding_signup/reservations/storage_interfaces.py
from abc import ABC, abstractmethod
from typing import List, Optional

from .models import PendingReservation, ReservationFields, ReserveResult


class AbstractReservationStore(ABC):
    """
    Storage contract for pending slug reservations.

    Implementations must make the uniqueness decision and the write a single
    atomic operation enforced by the persistence layer.
    """

    @abstractmethod
    async def initialize(self) -> None:
        pass

    @abstractmethod
    async def teardown(self) -> None:
        pass

    @abstractmethod
    async def try_reserve(
        self, slug: str, session_id: str, fields: ReservationFields
    ) -> ReserveResult:
        """
        Reserve a slug for a payment session.

        Returns the stored PendingReservation, or a SlugConflict naming
        whether a finalized tenant or another live reservation holds the slug.
        Replaying the same session id returns the existing reservation.
        """
        pass

    @abstractmethod
    async def get_by_session_id(self, session_id: str) -> Optional[PendingReservation]:
        pass

    @abstractmethod
    async def get_active_by_slug(self, slug: str) -> Optional[PendingReservation]:
        """Return the live (pending, unexpired) reservation holding a slug, if any."""
        pass

    @abstractmethod
    async def list_reservations(self, skip: int = 0, limit: int = 100) -> List[PendingReservation]:
        pass

    @abstractmethod
    async def expire_stale(self) -> int:
        """
        Mark reservations past their TTL as expired and release their slugs.

        Returns the number of reservations expired. Expired reservations
        already stop blocking new claims before this runs.
        """
        pass
