# wedding_signup/slugs/__init__.py
"""
Slug policy and the shared slug-conflict result types.
"""

from .models import ClaimHolder, SlugConflict, SlugAvailability
from .policy import (
    RESERVED_SLUGS,
    validate_format,
    is_reserved,
    normalize,
    suggest_alternatives,
)

__all__ = [
    "ClaimHolder",
    "SlugConflict",
    "SlugAvailability",
    "RESERVED_SLUGS",
    "validate_format",
    "is_reserved",
    "normalize",
    "suggest_alternatives",
]
