# wedding_signup/payments/errors.py
from typing import Optional


class PaymentGatewayError(Exception):
    """Raised when the payment provider rejects a call or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
