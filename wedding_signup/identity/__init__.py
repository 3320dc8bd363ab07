# wedding_signup/identity/__init__.py
"""
Owner identities at the external authentication provider.
"""

from .models import OwnerIdentity, IdentityMetadata
from .errors import IdentityProviderError, IdentityAlreadyExistsError, IdentityOutcomeUnknownError
from .provider import AbstractIdentityProvider, SupabaseIdentityProvider

__all__ = [
    "OwnerIdentity",
    "IdentityMetadata",
    "IdentityProviderError",
    "IdentityAlreadyExistsError",
    "IdentityOutcomeUnknownError",
    "AbstractIdentityProvider",
    "SupabaseIdentityProvider",
]
