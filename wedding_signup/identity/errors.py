# wedding_signup/identity/errors.py
from typing import Optional


class IdentityProviderError(Exception):
    """Raised when the identity provider rejects a call or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class IdentityAlreadyExistsError(IdentityProviderError):
    """An identity with this email is already registered."""


class IdentityOutcomeUnknownError(IdentityProviderError):
    """The create request reached the provider but no answer came back; it may have committed."""
