"""Factory selecting the tenant change service for the configured tenant type."""

from __future__ import annotations

from infrastructure.database.connection_resolver import ConnectionResolver
from infrastructure.settings import TenancySettings
from tenancy.domain.exceptions import TenancyConfigurationError
from tenancy.domain.value_objects import TenantType
from tenancy.infrastructure.change_services.base import AbstractTenantChangeService
from tenancy.infrastructure.change_services.hierarchical import (
    HierarchicalTenantChangeService,
    ShardingHierarchicalTenantChangeService,
)
from tenancy.infrastructure.change_services.single_level import (
    ShardingSingleLevelTenantChangeService,
    SingleLevelTenantChangeService,
)
from tenancy.infrastructure.observability import TenantChangeServiceProbe
from tenancy.ports.change_service import ITenantChangeServiceFactory

_SERVICES: dict[TenantType, type[AbstractTenantChangeService]] = {
    TenantType.SINGLE_LEVEL: SingleLevelTenantChangeService,
    TenantType.SINGLE_LEVEL | TenantType.ADD_SHARDING: (
        ShardingSingleLevelTenantChangeService
    ),
    TenantType.HIERARCHICAL: HierarchicalTenantChangeService,
    TenantType.HIERARCHICAL | TenantType.ADD_SHARDING: (
        ShardingHierarchicalTenantChangeService
    ),
}


class TenantChangeServiceFactory(ITenantChangeServiceFactory):
    """Creates a fresh change service per request for the configured tenant type.

    Tests replace this factory with a stub that records the calls made to
    the change service instead of touching any store.
    """

    def __init__(
        self,
        resolver: ConnectionResolver,
        settings: TenancySettings,
        probe: TenantChangeServiceProbe | None = None,
    ):
        self._resolver = resolver
        self._settings = settings
        self._probe = probe

    @property
    def tenant_type(self) -> TenantType:
        """The configured tenant type."""
        return self._settings.tenant_type

    def create_change_service(self) -> AbstractTenantChangeService:
        """Return a new change service for the configured tenant type.

        Raises:
            TenancyConfigurationError: If the tenant type has no change service
        """
        service_class = _SERVICES.get(self._settings.tenant_type)
        if service_class is None:
            raise TenancyConfigurationError(
                f"No tenant change service exists for tenant type "
                f"{self._settings.tenant_type!r}"
            )
        return service_class(
            resolver=self._resolver,
            settings=self._settings,
            probe=self._probe,
        )
