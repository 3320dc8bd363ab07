# wedding_signup/signup/models.py
from pydantic import BaseModel, ConfigDict, Field, SecretStr
from typing import Optional

from ..reservations.models import ReservationFields


class SignupRequest(BaseModel):
    """
    Raw signup form as posted by the wizard.

    Every field is optional here so missing or malformed input is reported
    by validate_signup() with a field-scoped error instead of a 422.
    """
    model_config = ConfigDict(extra="ignore")

    email: Optional[str] = None
    password: Optional[str] = None
    partner1_name: Optional[str] = None
    partner2_name: Optional[str] = None
    wedding_date: Optional[str] = None
    slug: Optional[str] = None
    theme_id: Optional[str] = None


class ValidatedSignup(BaseModel):
    email: str
    password: SecretStr
    partner1_name: str
    partner2_name: str
    wedding_date: Optional[str] = None
    slug: str
    theme_id: str

    @property
    def couple_names(self) -> str:
        return f"{self.partner1_name} & {self.partner2_name}"

    def reservation_fields(self, sealed_credential: str) -> ReservationFields:
        return ReservationFields(
            email=self.email,
            partner1_name=self.partner1_name,
            partner2_name=self.partner2_name,
            wedding_date=self.wedding_date,
            theme_id=self.theme_id,
            sealed_credential=sealed_credential,
        )


class CheckoutStarted(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    url: Optional[str] = None


class TrialAccountCreated(BaseModel):
    success: bool = True
    slug: str
    email: str


class VerifyPaymentRequest(BaseModel):
    session_id: Optional[str] = None


class FinalizationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    slug: str
    redirect: str
    already_completed: Optional[bool] = Field(default=None, alias="alreadyCompleted")
    message: Optional[str] = None
