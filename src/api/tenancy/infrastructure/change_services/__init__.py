"""Tenant change services, one per tenant topology and sharding combination."""

from tenancy.infrastructure.change_services.base import AbstractTenantChangeService
from tenancy.infrastructure.change_services.factory import TenantChangeServiceFactory
from tenancy.infrastructure.change_services.hierarchical import (
    HierarchicalTenantChangeService,
    ShardingHierarchicalTenantChangeService,
)
from tenancy.infrastructure.change_services.single_level import (
    ShardingSingleLevelTenantChangeService,
    SingleLevelTenantChangeService,
)

__all__ = [
    "AbstractTenantChangeService",
    "HierarchicalTenantChangeService",
    "ShardingHierarchicalTenantChangeService",
    "ShardingSingleLevelTenantChangeService",
    "SingleLevelTenantChangeService",
    "TenantChangeServiceFactory",
]
