"""SQLAlchemy ORM models for the tenancy bounded context.

``TenantModel`` is an identity table; ``CompanyModel`` is a tenant-scoped
table provisioned in every tenant data store.
"""

from tenancy.infrastructure.models.company import CompanyModel
from tenancy.infrastructure.models.tenant import TenantModel

__all__ = [
    "CompanyModel",
    "TenantModel",
]
