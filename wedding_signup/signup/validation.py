# wedding_signup/signup/validation.py
"""
Field validation shared by the paid and trial signup flows.

Checks run in a fixed order and stop at the first failure, so a request
is rejected before any external call is made.
"""
import re
from typing import FrozenSet, List

from .errors import InvalidFieldError, MissingFieldsError
from .models import SignupRequest, ValidatedSignup
from ..slugs.policy import is_reserved, normalize, validate_format

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PASSWORD_MIN_LENGTH = 8
PASSWORD_REQUIREMENTS_MESSAGE = (
    "Password must be at least 8 characters with uppercase, lowercase, and a number"
)

THEME_IDS: FrozenSet[str] = frozenset({"classic", "luxe", "jardin", "cobalt", "editorial", "french"})


def password_errors(password: str) -> List[str]:
    errors = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"at least {PASSWORD_MIN_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        errors.append("an uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("a lowercase letter")
    if not re.search(r"[0-9]", password):
        errors.append("a number")
    return errors


def _present(value) -> bool:
    return bool(value and value.strip())


def validate_signup(request: SignupRequest) -> ValidatedSignup:
    """
    Validate a raw signup form.

    Raises:
        MissingFieldsError: a required field is absent or blank
        InvalidFieldError: email, password, theme_id or slug is invalid
    """
    required = (
        request.email,
        request.partner1_name,
        request.partner2_name,
        request.slug,
        request.theme_id,
    )
    if not all(_present(v) for v in required) or not request.password:
        raise MissingFieldsError()

    email = request.email.strip()
    if not EMAIL_PATTERN.fullmatch(email):
        raise InvalidFieldError("Invalid email", "email", "Please enter a valid email address.")

    if password_errors(request.password):
        raise InvalidFieldError("Weak password", "password", PASSWORD_REQUIREMENTS_MESSAGE)

    theme_id = request.theme_id.strip()
    if theme_id not in THEME_IDS:
        raise InvalidFieldError("Invalid theme", "theme_id", "Please choose one of the available themes.")

    slug = normalize(request.slug)
    if not validate_format(slug):
        raise InvalidFieldError(
            "Invalid slug format",
            "slug",
            "URL must be 3-50 characters, lowercase letters, numbers, and hyphens only.",
        )
    if is_reserved(slug):
        raise InvalidFieldError("Reserved slug", "slug", "This URL is reserved and cannot be used.")

    return ValidatedSignup(
        email=email,
        password=request.password,
        partner1_name=request.partner1_name.strip(),
        partner2_name=request.partner2_name.strip(),
        wedding_date=(request.wedding_date or "").strip() or None,
        slug=slug,
        theme_id=theme_id,
    )
