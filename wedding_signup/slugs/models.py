# wedding_signup/slugs/models.py
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class ClaimHolder(str, Enum):
    """Who currently holds a slug in the shared slug namespace."""
    TENANT = "tenant"
    RESERVATION = "reservation"


class SlugConflict(BaseModel):
    """
    Typed result returned when an atomic slug claim loses.

    A conflict with a finalized tenant is permanent; a conflict with another
    in-flight reservation is transient and clears once that reservation
    completes elsewhere or passes its TTL.
    """
    slug: str
    holder: ClaimHolder

    @property
    def permanent(self) -> bool:
        return self.holder == ClaimHolder.TENANT


class SlugAvailability(BaseModel):
    """Response model for the public slug availability check."""
    available: bool
    reason: Optional[str] = Field(
        default=None,
        description="invalid_format, reserved, taken or pending when unavailable."
    )
    message: Optional[str] = None
    suggestions: Optional[List[str]] = None
