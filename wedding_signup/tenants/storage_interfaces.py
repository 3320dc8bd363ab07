# wedding_signup/tenants/storage_interfaces.py
from abc import ABC, abstractmethod
from typing import Optional

from .models import AccountCreate, CreateAccountResult, WeddingInDB


class AbstractTenantStore(ABC):
    """
    Storage contract for finalized tenants (owner profile + wedding).
    """

    @abstractmethod
    async def initialize(self) -> None:
        pass

    @abstractmethod
    async def teardown(self) -> None:
        pass

    @abstractmethod
    async def create_account(self, account: AccountCreate) -> CreateAccountResult:
        """
        Create the owner profile, the wedding and its slug claim as one unit.

        Either everything is written or nothing is. A lost slug is reported
        as a SlugConflict rather than raised. When the account finalizes a
        reservation, that reservation is marked completed in the same unit.

        Args:
            account: Identity, couple and subscription data for the new tenant

        Returns:
            AccountRecord on success, SlugConflict if the slug is held elsewhere
        """
        pass

    @abstractmethod
    async def get_tenant_by_slug(self, slug: str) -> Optional[WeddingInDB]:
        """Return the finalized tenant owning a slug, if any."""
        pass

    @abstractmethod
    async def owner_exists(self, identity_id: str) -> bool:
        """Whether an owner profile is linked to this identity."""
        pass
