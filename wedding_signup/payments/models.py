# wedding_signup/payments/models.py
from pydantic import BaseModel, Field
from typing import Dict, Optional


class CheckoutSessionCreate(BaseModel):
    amount_cents: int
    currency: str
    product_name: str
    product_description: str
    customer_email: str
    success_url: str
    cancel_url: str
    metadata: Dict[str, str] = Field(default_factory=dict)


class CheckoutSession(BaseModel):
    """The subset of a provider checkout session this service relies on."""
    id: str
    url: Optional[str] = None
    status: Optional[str] = None
    payment_status: Optional[str] = None
    customer_id: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"
