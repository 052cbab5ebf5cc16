"""FastAPI dependency wiring for the tenant admin service."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.connection_resolver import ConnectionResolver
from infrastructure.database.dependencies import (
    get_connection_resolver,
    get_write_session,
)
from infrastructure.settings import TenancySettings, get_tenancy_settings
from tenancy.application.locking import TenantLockRegistry
from tenancy.application.observability import (
    DefaultTenantAdminServiceProbe,
    TenantAdminServiceProbe,
)
from tenancy.application.services import TenantAdminService
from tenancy.infrastructure.change_services import TenantChangeServiceFactory
from tenancy.infrastructure.tenant_repository import TenantRepository
from tenancy.ports.change_service import ITenantChangeServiceFactory

# Module-level lock registry shared by every request in the process
_tenant_locks = TenantLockRegistry()


def get_tenant_lock_registry() -> TenantLockRegistry:
    """Get the process-wide tenant lock registry."""
    return _tenant_locks


def get_tenant_admin_service_probe() -> TenantAdminServiceProbe:
    """Get TenantAdminServiceProbe instance.

    Returns:
        DefaultTenantAdminServiceProbe instance for observability
    """
    return DefaultTenantAdminServiceProbe()


def get_tenant_repository(
    session: Annotated[AsyncSession, Depends(get_write_session)],
) -> TenantRepository:
    """Get TenantRepository instance.

    Args:
        session: Async identity database session

    Returns:
        TenantRepository instance
    """
    return TenantRepository(session=session)


def get_change_service_factory(
    resolver: Annotated[ConnectionResolver, Depends(get_connection_resolver)],
    settings: Annotated[TenancySettings, Depends(get_tenancy_settings)],
) -> ITenantChangeServiceFactory:
    """Get the change service factory for the configured tenant type.

    Tests override this dependency with a recording stub factory.
    """
    return TenantChangeServiceFactory(resolver=resolver, settings=settings)


def get_tenant_admin_service(
    tenant_repo: Annotated[TenantRepository, Depends(get_tenant_repository)],
    session: Annotated[AsyncSession, Depends(get_write_session)],
    settings: Annotated[TenancySettings, Depends(get_tenancy_settings)],
    factory: Annotated[
        ITenantChangeServiceFactory, Depends(get_change_service_factory)
    ],
    probe: Annotated[
        TenantAdminServiceProbe, Depends(get_tenant_admin_service_probe)
    ],
    locks: Annotated[TenantLockRegistry, Depends(get_tenant_lock_registry)],
) -> TenantAdminService:
    """Get TenantAdminService instance.

    Args:
        tenant_repo: Tenant repository (shares session via FastAPI dependency caching)
        session: Identity database session for transaction management
        settings: Tenancy settings
        factory: Change service factory
        probe: Tenant admin service probe for observability
        locks: Process-wide tenant lock registry

    Returns:
        TenantAdminService instance
    """
    return TenantAdminService(
        tenant_repository=tenant_repo,
        session=session,
        settings=settings,
        change_service_factory=factory,
        probe=probe,
        locks=locks,
    )
