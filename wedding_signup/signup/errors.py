# wedding_signup/signup/errors.py
from fastapi import HTTPException, status
from typing import Any, Dict, Optional

GENERIC_FAILURE_MESSAGE = "Something went wrong while creating your account. Please try again."


class SignupError(HTTPException):
    """Base class for signup errors rendered as a flat JSON body.

    Each error carries a short `error` label, a user-facing `message`, and
    optionally the form `field` it concerns and a machine-readable `code`.
    """

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        field: Optional[str] = None,
        code: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        self.error = error
        self.message = message
        self.field = field
        self.code = code
        self.extra = extra or {}
        super().__init__(status_code=status_code, detail=self.to_payload(), headers=headers)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.error}
        if self.field:
            payload["field"] = self.field
        payload["message"] = self.message
        if self.code:
            payload["code"] = self.code
        payload.update(self.extra)
        return payload


class MissingFieldsError(SignupError):
    def __init__(self, message: str = "Email, password, partner names, slug, and theme are required."):
        super().__init__(status.HTTP_400_BAD_REQUEST, "Missing required fields", message)


class InvalidFieldError(SignupError):
    """A single form field failed validation."""

    def __init__(self, error: str, field: str, message: str):
        super().__init__(status.HTTP_400_BAD_REQUEST, error, message, field=field)


class SlugTakenError(SignupError):
    """A finalized wedding already owns the slug. Permanent."""

    def __init__(self, message: str = "This URL is already in use. Please choose another."):
        super().__init__(status.HTTP_400_BAD_REQUEST, "Slug taken", message, field="slug")


class SlugReservedError(SignupError):
    """Another in-flight signup holds the slug. Clears once that hold completes or expires."""

    def __init__(
        self,
        message: str = "This URL is being reserved by another signup. Please choose another or try again later.",
    ):
        super().__init__(status.HTTP_409_CONFLICT, "Slug reserved", message, field="slug")


class AccountExistsError(SignupError):
    def __init__(
        self,
        message: str = "An account with this email already exists. Please sign in instead.",
        code: Optional[str] = None,
    ):
        super().__init__(status.HTTP_400_BAD_REQUEST, "Account exists", message, field="email", code=code)


class MissingSessionIdError(SignupError):
    def __init__(self):
        super().__init__(status.HTTP_400_BAD_REQUEST, "Missing session ID", "Payment session ID is required.")


class PaymentNotCompletedError(SignupError):
    def __init__(self):
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            "Payment not completed",
            "Payment has not been completed yet.",
        )


class ReservationNotFoundError(SignupError):
    def __init__(self):
        super().__init__(
            status.HTTP_404_NOT_FOUND,
            "Signup data not found",
            "Unable to find your signup information. Please contact support.",
        )


class SlugConflictAfterPaymentError(SignupError):
    def __init__(self):
        super().__init__(
            status.HTTP_409_CONFLICT,
            "Slug taken after payment",
            "This URL was just taken by someone else. Please contact support to choose a different URL.",
            field="slug",
            code="SLUG_CONFLICT_POST_PAYMENT",
        )


class RateLimitExceededError(SignupError):
    def __init__(self, retry_after_seconds: int, reset_at_iso: str):
        super().__init__(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "Too many requests",
            "Rate limit exceeded. Please try again later.",
            headers={
                "Retry-After": str(retry_after_seconds),
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": reset_at_iso,
            },
            extra={"retryAfter": retry_after_seconds},
        )


class ProvisioningFailedError(SignupError):
    """Any server-side failure. The message never carries internal detail."""

    def __init__(self, error: str = "Account creation failed"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, error, GENERIC_FAILURE_MESSAGE)


class ServiceNotConfiguredError(SignupError):
    """A required external dependency is not configured on this server."""

    def __init__(self, error: str, message: str):
        super().__init__(status.HTTP_503_SERVICE_UNAVAILABLE, error, message)
