# wedding_signup/signup/__init__.py
"""
Signup flows: field validation, the paid checkout, the free trial and
payment finalization, plus the error types they raise.

Routers live in signup.endpoints and are mounted by main.
"""

from .errors import SignupError
from .models import SignupRequest, ValidatedSignup
from .validation import validate_signup, password_errors, THEME_IDS

__all__ = [
    "SignupError",
    "SignupRequest",
    "ValidatedSignup",
    "validate_signup",
    "password_errors",
    "THEME_IDS",
]
