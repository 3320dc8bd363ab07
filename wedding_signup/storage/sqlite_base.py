# wedding_signup/storage/sqlite_base.py
import sqlite3
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from ..settings import settings

logger = logging.getLogger(__name__)

# Global connection instance to ensure single connection per application lifecycle
_db_connection: Optional[sqlite3.Connection] = None


def to_db_timestamp(value: datetime) -> str:
    """
    Serialize a datetime for storage.

    Always UTC with microseconds so stored values compare correctly as text.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


async def get_sqlite_db_connection() -> sqlite3.Connection:
    """
    Get or create the SQLite database connection.

    Uses a singleton pattern to maintain a single connection throughout
    the application lifecycle. Ensures the database directory exists
    and initializes the schema on first connection.
    """
    global _db_connection
    if _db_connection is None:
        try:
            db_path = Path(settings.sqlite_db_path).resolve()
            db_path.parent.mkdir(parents=True, exist_ok=True)

            logger.info(f"Attempting to connect to SQLite DB at: {db_path}")

            _db_connection = open_sqlite_connection(str(db_path))

            logger.info(f"Successfully connected to SQLite DB: {db_path}")

            await init_sqlite_db(_db_connection)
        except sqlite3.Error as e:
            logger.error(
                f"Error connecting to SQLite database at {settings.sqlite_db_path}: {e}",
                exc_info=True
            )
            raise
    return _db_connection


def open_sqlite_connection(database: str) -> sqlite3.Connection:
    """Open a connection configured the way every store expects it."""
    # Thread-safe access for async/FastAPI compatibility
    conn = sqlite3.connect(database, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    # Wait on a competing writer instead of failing immediately
    conn.execute("PRAGMA busy_timeout = 5000")
    return conn


@contextmanager
def immediate_transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Cursor]:
    """
    Run a block inside a single BEGIN IMMEDIATE transaction.

    The write lock is taken up front so reads made inside the block cannot be
    invalidated by another writer before the block's own writes land.
    Commits on success, rolls back on any exception.
    """
    if conn.in_transaction:
        conn.commit()
    cursor = conn.cursor()
    cursor.execute("BEGIN IMMEDIATE")
    try:
        yield cursor
    except BaseException:
        conn.rollback()
        raise
    else:
        conn.commit()


async def init_sqlite_db(conn: Optional[sqlite3.Connection] = None):
    """
    Initialize the SQLite database schema by creating all required tables.

    Uses IF NOT EXISTS to safely handle repeated initialization calls.
    """
    db_conn = conn or await get_sqlite_db_connection()
    cursor = db_conn.cursor()

    # Single namespace for slugs held by tenants and in-flight reservations.
    # The primary key is the only authority on who owns a slug.
    cursor.execute('''
    CREATE TABLE IF NOT EXISTS slug_claims (
        slug TEXT PRIMARY KEY,
        holder_kind TEXT NOT NULL CHECK (holder_kind IN ('tenant', 'reservation')),
        holder_id TEXT NOT NULL,
        expires_at TEXT,
        claimed_at TEXT NOT NULL
    )
    ''')
    logger.info("Ensured 'slug_claims' table exists.")

    cursor.execute('''
    CREATE TABLE IF NOT EXISTS pending_reservations (
        id TEXT PRIMARY KEY,
        payment_session_id TEXT NOT NULL UNIQUE,
        slug TEXT NOT NULL,
        email TEXT NOT NULL,
        partner1_name TEXT NOT NULL,
        partner2_name TEXT NOT NULL,
        wedding_date TEXT,
        theme_id TEXT NOT NULL,
        sealed_credential TEXT,
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'completed', 'expired')),
        created_at TEXT NOT NULL,
        expires_at TEXT NOT NULL,
        completed_at TEXT
    )
    ''')
    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_pending_reservations_slug ON pending_reservations(slug)"
    )
    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_pending_reservations_expires_at ON pending_reservations(expires_at)"
    )
    logger.info("Ensured 'pending_reservations' table exists.")

    cursor.execute('''
    CREATE TABLE IF NOT EXISTS owner_profiles (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL,
        full_name TEXT NOT NULL,
        subscription_status TEXT NOT NULL,
        subscription_end_date TEXT NOT NULL,
        payment_customer_id TEXT,
        created_at TEXT NOT NULL
    )
    ''')
    logger.info("Ensured 'owner_profiles' table exists.")

    cursor.execute('''
    CREATE TABLE IF NOT EXISTS weddings (
        id TEXT PRIMARY KEY,
        owner_id TEXT NOT NULL REFERENCES owner_profiles(id),
        slug TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        partner1_name TEXT NOT NULL,
        partner2_name TEXT NOT NULL,
        wedding_date TEXT,
        access_code TEXT NOT NULL,
        config_json TEXT NOT NULL,
        is_published INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL
    )
    ''')
    logger.info("Ensured 'weddings' table exists.")

    db_conn.commit()
    logger.info("SQLite database schema initialized/verified.")


async def close_sqlite_db_connection():
    """
    Close the global SQLite database connection.

    Should be called during application shutdown.
    """
    global _db_connection
    if _db_connection is not None:
        logger.info("Closing SQLite DB connection.")
        _db_connection.close()
        _db_connection = None
        logger.info("SQLite DB connection closed.")
