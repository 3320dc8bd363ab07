# wedding_signup/tenants/__init__.py
"""
Finalized tenants: owner profiles and their weddings.
"""

from .models import (
    SubscriptionStatus,
    AccountCreate,
    AccountRecord,
    CreateAccountResult,
    Wedding,
    WeddingInDB,
)
from .storage_interfaces import AbstractTenantStore
from .sqlite_tenant_store import SQLiteTenantStore, get_sqlite_tenant_store
from .service import TenantService

__all__ = [
    "SubscriptionStatus",
    "AccountCreate",
    "AccountRecord",
    "CreateAccountResult",
    "Wedding",
    "WeddingInDB",
    "AbstractTenantStore",
    "SQLiteTenantStore",
    "get_sqlite_tenant_store",
    "TenantService",
]
