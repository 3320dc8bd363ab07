# wedding_signup/reservations/sqlite_reservation_store.py
import sqlite3
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional
from uuid import uuid4

from .storage_interfaces import AbstractReservationStore
from .models import PendingReservation, ReservationFields, ReservationStatus, ReserveResult
from ..slugs.models import ClaimHolder, SlugConflict
from ..storage.sqlite_base import (
    get_sqlite_db_connection,
    immediate_transaction,
    to_db_timestamp,
    from_db_timestamp,
    utc_now,
)
from ..storage.slug_claims import claim_slug, release_expired_reservation_claims
from ..settings import settings

logger = logging.getLogger(__name__)

_RESERVATION_COLUMNS = """
    id, payment_session_id, slug, email, partner1_name, partner2_name,
    wedding_date, theme_id, sealed_credential, status, created_at,
    expires_at, completed_at
"""


class SQLiteReservationStore(AbstractReservationStore):
    """SQLite implementation of the reservation store."""

    def __init__(
        self,
        conn: Optional[sqlite3.Connection] = None,
        ttl: Optional[timedelta] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._conn = conn
        self.ttl = ttl if ttl is not None else timedelta(hours=settings.reservation_ttl_hours)
        self._clock = clock

    async def initialize(self) -> None:
        await self._get_conn()
        logger.info(f"SQLiteReservationStore initialized. TTL: {self.ttl}.")

    async def teardown(self) -> None:
        logger.info("SQLiteReservationStore teardown (connection managed globally).")

    async def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = await get_sqlite_db_connection()
        return self._conn

    async def _fetchone(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        conn = await self._get_conn()
        try:
            return conn.execute(query, params).fetchone()
        except sqlite3.Error as e:
            logger.error(f"SQLite error during fetchone for query '{query}': {e}", exc_info=True)
            raise

    async def _fetchall(self, query: str, params: tuple = ()) -> List[sqlite3.Row]:
        conn = await self._get_conn()
        try:
            return conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            logger.error(f"SQLite error during fetchall for query '{query}': {e}", exc_info=True)
            raise

    def _row_to_reservation(self, row: Optional[sqlite3.Row]) -> Optional[PendingReservation]:
        """
        Convert a database row to a PendingReservation.

        A pending row past its TTL is reported as expired even if the
        maintenance job has not visited it yet.
        """
        if not row:
            return None
        expires_at = from_db_timestamp(row["expires_at"])
        status = ReservationStatus(row["status"])
        if status == ReservationStatus.PENDING and expires_at <= self._clock():
            status = ReservationStatus.EXPIRED
        return PendingReservation(
            id=row["id"],
            slug=row["slug"],
            payment_session_id=row["payment_session_id"],
            email=row["email"],
            partner1_name=row["partner1_name"],
            partner2_name=row["partner2_name"],
            wedding_date=row["wedding_date"],
            theme_id=row["theme_id"],
            sealed_credential=row["sealed_credential"],
            status=status,
            created_at=from_db_timestamp(row["created_at"]),
            expires_at=expires_at,
            completed_at=from_db_timestamp(row["completed_at"]),
        )

    async def try_reserve(
        self, slug: str, session_id: str, fields: ReservationFields
    ) -> ReserveResult:
        conn = await self._get_conn()
        now = self._clock()
        expires_at = now + self.ttl
        reservation_id = str(uuid4())

        try:
            with immediate_transaction(conn) as cursor:
                cursor.execute(
                    f"SELECT {_RESERVATION_COLUMNS} FROM pending_reservations WHERE payment_session_id = ?",
                    (session_id,),
                )
                existing = cursor.fetchone()
                if existing:
                    if existing["slug"] != slug:
                        logger.warning(
                            f"Session '{session_id}' already reserves slug '{existing['slug']}'; "
                            f"refusing to report it as holding '{slug}'."
                        )
                        return SlugConflict(slug=slug, holder=ClaimHolder.RESERVATION)
                    logger.info(f"Reservation for session '{session_id}' already exists; returning it.")
                    return self._row_to_reservation(existing)

                conflict = claim_slug(
                    cursor,
                    slug,
                    ClaimHolder.RESERVATION,
                    reservation_id,
                    now=now,
                    expires_at=expires_at,
                )
                if conflict:
                    return conflict

                cursor.execute(
                    """
                    INSERT INTO pending_reservations (
                        id, payment_session_id, slug, email, partner1_name, partner2_name,
                        wedding_date, theme_id, sealed_credential, status, created_at, expires_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        reservation_id,
                        session_id,
                        slug,
                        fields.email,
                        fields.partner1_name,
                        fields.partner2_name,
                        fields.wedding_date,
                        fields.theme_id,
                        fields.sealed_credential,
                        ReservationStatus.PENDING.value,
                        to_db_timestamp(now),
                        to_db_timestamp(expires_at),
                    ),
                )
        except sqlite3.Error as e:
            logger.error(f"SQLite error reserving slug '{slug}' for session '{session_id}': {e}", exc_info=True)
            raise

        logger.info(f"Reserved slug '{slug}' for session '{session_id}' until {expires_at.isoformat()}.")
        return PendingReservation(
            id=reservation_id,
            slug=slug,
            payment_session_id=session_id,
            email=fields.email,
            partner1_name=fields.partner1_name,
            partner2_name=fields.partner2_name,
            wedding_date=fields.wedding_date,
            theme_id=fields.theme_id,
            sealed_credential=fields.sealed_credential,
            status=ReservationStatus.PENDING,
            created_at=now,
            expires_at=expires_at,
        )

    async def get_by_session_id(self, session_id: str) -> Optional[PendingReservation]:
        row = await self._fetchone(
            f"SELECT {_RESERVATION_COLUMNS} FROM pending_reservations WHERE payment_session_id = ?",
            (session_id,),
        )
        return self._row_to_reservation(row)

    async def get_active_by_slug(self, slug: str) -> Optional[PendingReservation]:
        row = await self._fetchone(
            f"""
            SELECT {_RESERVATION_COLUMNS} FROM pending_reservations
            WHERE slug = ? AND status = 'pending' AND expires_at > ?
            ORDER BY created_at DESC
            LIMIT 1
            """,
            (slug, to_db_timestamp(self._clock())),
        )
        return self._row_to_reservation(row)

    async def list_reservations(self, skip: int = 0, limit: int = 100) -> List[PendingReservation]:
        rows = await self._fetchall(
            f"""
            SELECT {_RESERVATION_COLUMNS} FROM pending_reservations
            ORDER BY created_at DESC
            LIMIT ? OFFSET ?
            """,
            (limit, skip),
        )
        return [self._row_to_reservation(row) for row in rows]

    async def expire_stale(self) -> int:
        conn = await self._get_conn()
        now = self._clock()
        now_iso = to_db_timestamp(now)
        try:
            with immediate_transaction(conn) as cursor:
                # The sealed credential has no use once the reservation is dead
                cursor.execute(
                    """
                    UPDATE pending_reservations
                    SET status = 'expired', sealed_credential = NULL
                    WHERE status = 'pending' AND expires_at <= ?
                    """,
                    (now_iso,),
                )
                expired_count = cursor.rowcount
                released = release_expired_reservation_claims(cursor, now)
        except sqlite3.Error as e:
            logger.error(f"SQLite error expiring stale reservations: {e}", exc_info=True)
            raise

        if expired_count or released:
            logger.info(f"Expired {expired_count} stale reservation(s); released {released} slug claim(s).")
        return expired_count


# Singleton instance management
_sqlite_reservation_store_instance: Optional[SQLiteReservationStore] = None


async def get_sqlite_reservation_store() -> SQLiteReservationStore:
    """Get or create the singleton SQLiteReservationStore instance."""
    global _sqlite_reservation_store_instance
    if _sqlite_reservation_store_instance is None:
        _sqlite_reservation_store_instance = SQLiteReservationStore()
        await _sqlite_reservation_store_instance.initialize()
    return _sqlite_reservation_store_instance
