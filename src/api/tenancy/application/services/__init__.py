"""Application services for the tenancy bounded context.

Application services orchestrate domain aggregates, repositories, and
change services to fulfill use cases. They are the "front door" to the
tenancy context.
"""

from tenancy.application.services.tenant_admin_service import TenantAdminService

__all__ = [
    "TenantAdminService",
]
