"""Domain-Oriented Observability for tenancy infrastructure.

Probes for repository and change service operations following
Domain-Oriented Observability patterns.
"""

from tenancy.infrastructure.observability.change_service_probe import (
    DefaultTenantChangeServiceProbe,
    TenantChangeServiceProbe,
)
from tenancy.infrastructure.observability.repository_probe import (
    DefaultTenantRepositoryProbe,
    TenantRepositoryProbe,
)

__all__ = [
    "DefaultTenantChangeServiceProbe",
    "DefaultTenantRepositoryProbe",
    "TenantChangeServiceProbe",
    "TenantRepositoryProbe",
]
