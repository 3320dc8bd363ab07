# wedding_signup/storage/__init__.py

"""Storage module initialization.

Provides the shared SQLite connection, schema and the slug-claim primitive
used by both the reservation store and the tenant store.
"""

from .sqlite_base import (
    get_sqlite_db_connection,
    init_sqlite_db,
    close_sqlite_db_connection,
    open_sqlite_connection,
    immediate_transaction,
)
from .slug_claims import claim_slug, release_expired_reservation_claims

__all__ = [
    "get_sqlite_db_connection",
    "init_sqlite_db",
    "close_sqlite_db_connection",
    "open_sqlite_connection",
    "immediate_transaction",
    "claim_slug",
    "release_expired_reservation_claims",
]
