"""Ports (interfaces) for the tenancy bounded context.

Ports define the contracts for repositories and change services without
specifying implementation details. This allows for dependency inversion
and lets the admin service be tested without real stores.
"""

from tenancy.ports.change_service import (
    ITenantChangeService,
    ITenantChangeServiceFactory,
    StagedMove,
)
from tenancy.ports.repositories import ITenantRepository

__all__ = [
    "ITenantChangeService",
    "ITenantChangeServiceFactory",
    "ITenantRepository",
    "StagedMove",
]
