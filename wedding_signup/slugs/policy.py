# wedding_signup/slugs/policy.py
"""
Slug policy shared by the signup flows and the availability check.

Pure functions only: format rules, the reserved-name blocklist,
normalization and fallback suggestions.
"""
import re
from datetime import datetime, timezone
from typing import FrozenSet, List, Optional

SLUG_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 50

_SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*[a-z0-9]$")
_SHORT_SLUG_PATTERN = re.compile(r"^[a-z0-9]{3}$")

RESERVED_SLUGS: FrozenSet[str] = frozenset({
    # System routes
    "admin",
    "api",
    "demo",
    "demo_gallery",
    "demo_livre-or",
    "connexion",
    "pricing",
    "offline",
    "account",
    "god",
    "test",
    "signup",
    "inscription",
    "registro",
    # Language prefixes
    "fr",
    "es",
    "en",
    # Infrastructure paths
    "www",
    "app",
    "static",
    "assets",
    "images",
    "css",
    "js",
    "_next",
    ".well-known",
})


def validate_format(slug: str) -> bool:
    """
    Check the slug format.

    3-50 characters of lowercase ASCII letters, digits and hyphens, starting
    and ending with an alphanumeric. 3-character slugs cannot contain a hyphen.
    """
    if not isinstance(slug, str):
        return False
    if len(slug) < SLUG_MIN_LENGTH or len(slug) > SLUG_MAX_LENGTH:
        return False
    if len(slug) == SLUG_MIN_LENGTH:
        return bool(_SHORT_SLUG_PATTERN.fullmatch(slug))
    # fullmatch, so a trailing newline cannot sneak past "$"
    return bool(_SLUG_PATTERN.fullmatch(slug))


def is_reserved(slug: str) -> bool:
    return slug in RESERVED_SLUGS


def normalize(slug: str) -> str:
    return slug.strip().lower()


def suggest_alternatives(slug: str, year: Optional[int] = None) -> List[str]:
    """
    Deterministic fallback candidates for a slug that is unavailable.

    Year-suffixed first, then -2 through -4. Only candidates that pass
    validate_format and are not reserved are returned. Never applied
    automatically; the caller shows them to the user.
    """
    if year is None:
        year = datetime.now(timezone.utc).year
    candidates = [f"{slug}-{year}"] + [f"{slug}-{i}" for i in range(2, 5)]
    return [c for c in candidates if validate_format(c) and not is_reserved(c)]
