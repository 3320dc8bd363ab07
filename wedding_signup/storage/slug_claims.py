# wedding_signup/storage/slug_claims.py
import sqlite3
import logging
from datetime import datetime
from typing import Optional

from .sqlite_base import to_db_timestamp
from ..slugs.models import ClaimHolder, SlugConflict

logger = logging.getLogger(__name__)

# The upsert only replaces a row that is an expired reservation claim, or the
# reservation being finalized into a tenant. Any other existing row makes the
# statement a no-op (rowcount 0), which is the conflict signal.
_CLAIM_SQL = """
    INSERT INTO slug_claims (slug, holder_kind, holder_id, expires_at, claimed_at)
    VALUES (?, ?, ?, ?, ?)
    ON CONFLICT(slug) DO UPDATE SET
        holder_kind = excluded.holder_kind,
        holder_id = excluded.holder_id,
        expires_at = excluded.expires_at,
        claimed_at = excluded.claimed_at
    WHERE slug_claims.holder_kind = 'reservation'
      AND (
        (slug_claims.expires_at IS NOT NULL AND slug_claims.expires_at <= ?)
        OR slug_claims.holder_id = ?
      )
"""


def claim_slug(
    cursor: sqlite3.Cursor,
    slug: str,
    holder: ClaimHolder,
    holder_id: str,
    now: datetime,
    expires_at: Optional[datetime] = None,
    supersedes_holder_id: Optional[str] = None,
) -> Optional[SlugConflict]:
    """
    Atomically claim a slug inside the caller's open transaction.

    Returns None when the claim was taken, or a SlugConflict naming the
    current holder when another tenant or live reservation owns the slug.
    """
    now_iso = to_db_timestamp(now)
    cursor.execute(
        _CLAIM_SQL,
        (
            slug,
            holder.value,
            holder_id,
            to_db_timestamp(expires_at) if expires_at else None,
            now_iso,
            now_iso,
            supersedes_holder_id,
        ),
    )
    if cursor.rowcount > 0:
        return None

    cursor.execute("SELECT holder_kind FROM slug_claims WHERE slug = ?", (slug,))
    row = cursor.fetchone()
    current = ClaimHolder(row["holder_kind"]) if row else ClaimHolder.TENANT
    logger.info(f"Slug claim for '{slug}' rejected; currently held by a {current.value}.")
    return SlugConflict(slug=slug, holder=current)


def release_expired_reservation_claims(cursor: sqlite3.Cursor, now: datetime) -> int:
    """Drop reservation claims whose TTL has passed. Returns the number released."""
    cursor.execute(
        "DELETE FROM slug_claims WHERE holder_kind = 'reservation' AND expires_at <= ?",
        (to_db_timestamp(now),),
    )
    return cursor.rowcount
