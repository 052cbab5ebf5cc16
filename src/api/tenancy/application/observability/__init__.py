"""Domain-Oriented Observability for the tenancy application layer."""

from tenancy.application.observability.tenant_admin_service_probe import (
    DefaultTenantAdminServiceProbe,
    TenantAdminServiceProbe,
)

__all__ = [
    "DefaultTenantAdminServiceProbe",
    "TenantAdminServiceProbe",
]
