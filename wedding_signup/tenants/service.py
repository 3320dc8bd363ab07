# wedding_signup/tenants/service.py
import logging
from typing import Optional

from .models import AccountCreate, CreateAccountResult, WeddingInDB
from .storage_interfaces import AbstractTenantStore

logger = logging.getLogger(__name__)


class TenantService:
    """
    Service layer for finalized tenants.

    Used by the signup flows for the slug pre-check and account creation,
    and by the admin API for lookups.
    """

    def __init__(self, tenant_store: AbstractTenantStore):
        self.tenant_store = tenant_store

    async def create_account(self, account: AccountCreate) -> CreateAccountResult:
        logger.info(f"Service: Creating account for slug '{account.slug}'")
        return await self.tenant_store.create_account(account)

    async def get_tenant(self, slug: str) -> Optional[WeddingInDB]:
        logger.info(f"Service: Getting tenant with slug: {slug}")
        return await self.tenant_store.get_tenant_by_slug(slug)

    async def slug_taken(self, slug: str) -> bool:
        """Fast-path check only. The atomic claim at creation time decides."""
        return await self.tenant_store.get_tenant_by_slug(slug) is not None
