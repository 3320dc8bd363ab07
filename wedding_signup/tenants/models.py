# wedding_signup/tenants/models.py
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, Union
from datetime import datetime
from enum import Enum

from ..slugs.models import SlugConflict


class SubscriptionStatus(str, Enum):
    TRIAL = "trial"
    ACTIVE = "active"


class AccountCreate(BaseModel):
    """Everything the tenant store needs to create an owner profile and wedding atomically."""
    identity_id: str
    email: str
    partner1_name: str
    partner2_name: str
    wedding_date: Optional[str] = None
    slug: str
    theme_id: str
    subscription_status: SubscriptionStatus
    subscription_end_date: datetime
    payment_customer_id: Optional[str] = None
    from_reservation_id: Optional[str] = Field(
        default=None,
        description="Reservation being finalized; its slug claim is handed over and it is marked completed."
    )

    @property
    def couple_names(self) -> str:
        return f"{self.partner1_name} & {self.partner2_name}"


class AccountRecord(BaseModel):
    """Result of a successful account creation."""
    identity_id: str
    tenant_id: str
    email: str
    slug: str
    couple_names: str
    access_code: str
    trial_ends_at: Optional[datetime] = None


class WeddingBase(BaseModel):
    slug: str
    name: str
    partner1_name: str
    partner2_name: str
    wedding_date: Optional[str] = None
    config: Dict[str, Any] = Field(
        default_factory=dict,
        description="Theme, features, moderation and timeline settings"
    )
    is_published: bool = True


class WeddingInDB(WeddingBase):
    id: str
    owner_id: str
    access_code: str
    created_at: datetime

    class Config:
        from_attributes = True


class Wedding(WeddingInDB):
    """Model for wedding data in admin API responses."""
    pass


CreateAccountResult = Union[AccountRecord, SlugConflict]
