# wedding_signup/tenants/endpoints.py
import logging
from fastapi import APIRouter, Depends, HTTPException, Path, status
from typing import Annotated

from .models import Wedding
from .service import TenantService
from .sqlite_tenant_store import get_sqlite_tenant_store
from .storage_interfaces import AbstractTenantStore
from ..dependencies import get_admin_api_key

logger = logging.getLogger(__name__)

# Admin router for tenant lookups - requires admin API key authentication
weddings_admin_router = APIRouter(
    prefix="/admin/weddings",
    tags=["Admin - Weddings"],
    dependencies=[Depends(get_admin_api_key)]
)


async def get_tenant_service(
    tenant_store: Annotated[AbstractTenantStore, Depends(get_sqlite_tenant_store)]
) -> TenantService:
    """Factory function to create TenantService with injected store dependency."""
    return TenantService(tenant_store)


@weddings_admin_router.get("/{slug}", response_model=Wedding)
async def get_wedding_endpoint(
    slug: Annotated[str, Path(description="The slug of the wedding to retrieve")],
    service: Annotated[TenantService, Depends(get_tenant_service)]
):
    """Retrieve a finalized wedding by slug."""
    wedding_in_db = await service.get_tenant(slug)
    if not wedding_in_db:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Wedding not found")
    return Wedding.model_validate(wedding_in_db.model_dump())
