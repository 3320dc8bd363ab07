# wedding_signup/identity/models.py
from pydantic import BaseModel
from typing import Any, Dict


class OwnerIdentity(BaseModel):
    """An authentication principal at the identity provider."""
    id: str
    email: str


class IdentityMetadata(BaseModel):
    full_name: str

    def as_user_metadata(self) -> Dict[str, Any]:
        return self.model_dump()
