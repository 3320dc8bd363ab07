# wedding_signup/reservations/__init__.py
"""
Pending slug reservations held while a paid checkout is in flight.
"""

from .models import (
    ReservationStatus,
    ReservationFields,
    PendingReservation,
    ReservationSummary,
    ExpireStaleResult,
    ReserveResult,
)
from .storage_interfaces import AbstractReservationStore
from .sqlite_reservation_store import SQLiteReservationStore, get_sqlite_reservation_store
from .service import ReservationService, run_cleanup_loop

__all__ = [
    "ReservationStatus",
    "ReservationFields",
    "PendingReservation",
    "ReservationSummary",
    "ExpireStaleResult",
    "ReserveResult",
    "AbstractReservationStore",
    "SQLiteReservationStore",
    "get_sqlite_reservation_store",
    "ReservationService",
    "run_cleanup_loop",
]
