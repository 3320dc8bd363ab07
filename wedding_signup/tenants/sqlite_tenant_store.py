# wedding_signup/tenants/sqlite_tenant_store.py
import sqlite3
import logging
import json
import secrets
from typing import Optional, Callable, Dict, Any
from datetime import datetime
from uuid import uuid4

from .storage_interfaces import AbstractTenantStore
from .models import (
    AccountCreate,
    AccountRecord,
    CreateAccountResult,
    SubscriptionStatus,
    WeddingInDB,
)
from ..slugs.models import ClaimHolder, SlugConflict
from ..storage.sqlite_base import (
    get_sqlite_db_connection,
    immediate_transaction,
    to_db_timestamp,
    from_db_timestamp,
    utc_now,
)
from ..storage.slug_claims import claim_slug

logger = logging.getLogger(__name__)

# Guest access codes skip characters that are easy to misread (O/0, I/1)
ACCESS_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ACCESS_CODE_LENGTH = 6


def generate_access_code() -> str:
    return "".join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(ACCESS_CODE_LENGTH))


def build_wedding_config(theme_id: str) -> Dict[str, Any]:
    """Initial configuration blob for a new wedding."""
    return {
        "theme": {
            "name": theme_id,
            "primaryColor": "#ae1725",
            "secondaryColor": "#c92a38",
            "fontFamily": "playfair",
        },
        "features": {
            "gallery": True,
            "guestbook": True,
            "rsvp": True,
            "liveWall": False,
            "geoFencing": False,
        },
        "moderation": {
            "enabled": True,
            "autoApprove": True,
        },
        "timeline": [],
    }


class SQLiteTenantStore(AbstractTenantStore):
    """SQLite implementation of the tenant storage interface."""

    def __init__(
        self,
        conn: Optional[sqlite3.Connection] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._conn = conn
        self._clock = clock

    async def initialize(self) -> None:
        await self._get_conn()
        logger.info("SQLiteTenantStore initialized.")

    async def teardown(self) -> None:
        logger.info("SQLiteTenantStore teardown (connection managed globally).")

    async def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = await get_sqlite_db_connection()
        return self._conn

    async def _fetchone(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        conn = await self._get_conn()
        try:
            return conn.execute(query, params).fetchone()
        except sqlite3.Error as e:
            logger.error(f"SQLite error executing query '{query}': {e}", exc_info=True)
            raise

    def _row_to_wedding_in_db(self, row: Optional[sqlite3.Row]) -> Optional[WeddingInDB]:
        if not row:
            return None
        return WeddingInDB(
            id=row["id"],
            owner_id=row["owner_id"],
            slug=row["slug"],
            name=row["name"],
            partner1_name=row["partner1_name"],
            partner2_name=row["partner2_name"],
            wedding_date=row["wedding_date"],
            access_code=row["access_code"],
            config=json.loads(row["config_json"]) if row["config_json"] else {},
            is_published=bool(row["is_published"]),
            created_at=from_db_timestamp(row["created_at"]),
        )

    async def create_account(self, account: AccountCreate) -> CreateAccountResult:
        conn = await self._get_conn()
        now = self._clock()
        now_iso = to_db_timestamp(now)
        tenant_id = str(uuid4())
        access_code = generate_access_code()
        couple_names = account.couple_names

        try:
            with immediate_transaction(conn) as cursor:
                # Claim first so a lost slug leaves nothing behind
                conflict = claim_slug(
                    cursor,
                    account.slug,
                    ClaimHolder.TENANT,
                    tenant_id,
                    now=now,
                    supersedes_holder_id=account.from_reservation_id,
                )
                if conflict:
                    return conflict

                cursor.execute(
                    """
                    INSERT INTO owner_profiles (
                        id, email, full_name, subscription_status,
                        subscription_end_date, payment_customer_id, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        email = excluded.email,
                        full_name = excluded.full_name,
                        subscription_status = excluded.subscription_status,
                        subscription_end_date = excluded.subscription_end_date,
                        payment_customer_id = excluded.payment_customer_id
                    """,
                    (
                        account.identity_id,
                        account.email,
                        couple_names,
                        account.subscription_status.value,
                        to_db_timestamp(account.subscription_end_date),
                        account.payment_customer_id,
                        now_iso,
                    ),
                )

                cursor.execute(
                    """
                    INSERT INTO weddings (
                        id, owner_id, slug, name, partner1_name, partner2_name,
                        wedding_date, access_code, config_json, is_published, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 1, ?)
                    """,
                    (
                        tenant_id,
                        account.identity_id,
                        account.slug,
                        f"{couple_names}'s Wedding",
                        account.partner1_name,
                        account.partner2_name,
                        account.wedding_date or None,
                        access_code,
                        json.dumps(build_wedding_config(account.theme_id)),
                        now_iso,
                    ),
                )

                if account.from_reservation_id:
                    cursor.execute(
                        """
                        UPDATE pending_reservations
                        SET status = 'completed', completed_at = ?, sealed_credential = NULL
                        WHERE id = ?
                        """,
                        (now_iso, account.from_reservation_id),
                    )
        except sqlite3.IntegrityError as e:
            # weddings.slug UNIQUE backs up the claim table
            logger.warning(f"Integrity error creating account for slug '{account.slug}': {e}")
            return SlugConflict(slug=account.slug, holder=ClaimHolder.TENANT)
        except sqlite3.Error as e:
            logger.error(f"SQLite error creating account for slug '{account.slug}': {e}", exc_info=True)
            raise

        logger.info(f"Created tenant '{tenant_id}' for slug '{account.slug}' ({account.subscription_status.value}).")
        return AccountRecord(
            identity_id=account.identity_id,
            tenant_id=tenant_id,
            email=account.email,
            slug=account.slug,
            couple_names=couple_names,
            access_code=access_code,
            trial_ends_at=(
                account.subscription_end_date
                if account.subscription_status == SubscriptionStatus.TRIAL
                else None
            ),
        )

    async def get_tenant_by_slug(self, slug: str) -> Optional[WeddingInDB]:
        query = """
            SELECT id, owner_id, slug, name, partner1_name, partner2_name, wedding_date,
                   access_code, config_json, is_published, created_at
            FROM weddings
            WHERE slug = ?
        """
        row = await self._fetchone(query, (slug,))
        return self._row_to_wedding_in_db(row)

    async def owner_exists(self, identity_id: str) -> bool:
        row = await self._fetchone("SELECT 1 FROM owner_profiles WHERE id = ?", (identity_id,))
        return row is not None


# Singleton instance management
_sqlite_tenant_store_instance: Optional[SQLiteTenantStore] = None


async def get_sqlite_tenant_store() -> SQLiteTenantStore:
    """
    Get or create the singleton SQLiteTenantStore instance.

    Ensures only one instance exists and is properly initialized.
    """
    global _sqlite_tenant_store_instance
    if _sqlite_tenant_store_instance is None:
        _sqlite_tenant_store_instance = SQLiteTenantStore()
        await _sqlite_tenant_store_instance.initialize()
    return _sqlite_tenant_store_instance
