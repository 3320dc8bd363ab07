# wedding_signup/reservations/models.py
from pydantic import BaseModel, Field
from typing import Optional, Union
from datetime import datetime
from enum import Enum

from ..slugs.models import SlugConflict


class ReservationStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    EXPIRED = "expired"


class ReservationFields(BaseModel):
    """Signup fields collected by the wizard and held until payment completes."""
    email: str
    partner1_name: str
    partner2_name: str
    wedding_date: Optional[str] = None
    theme_id: str
    sealed_credential: str = Field(
        description="Fernet token of the owner's credential. Never the plaintext."
    )


class PendingReservation(BaseModel):
    """A time-bounded hold on a slug tied to one payment session."""
    id: str
    slug: str
    payment_session_id: str
    email: str
    partner1_name: str
    partner2_name: str
    wedding_date: Optional[str] = None
    theme_id: str
    sealed_credential: Optional[str] = Field(default=None, repr=False)
    status: ReservationStatus
    created_at: datetime
    expires_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    def is_active(self, now: datetime) -> bool:
        return self.status == ReservationStatus.PENDING and self.expires_at > now


class ReservationSummary(BaseModel):
    """Admin listing view of a reservation. Omits the sealed credential."""
    id: str
    slug: str
    payment_session_id: str
    email: str
    status: ReservationStatus
    created_at: datetime
    expires_at: datetime
    completed_at: Optional[datetime] = None


class ExpireStaleResult(BaseModel):
    expired_count: int


ReserveResult = Union[PendingReservation, SlugConflict]
