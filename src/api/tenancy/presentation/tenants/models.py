"""Pydantic models for tenant admin API requests and responses."""

from __future__ import annotations

from pydantic import BaseModel, Field

from tenancy.application.value_objects import RedundantCopy
from tenancy.domain.aggregates import Tenant
from tenancy.domain.aggregates.tenant import MAX_TENANT_NAME_LENGTH


class CreateTenantRequest(BaseModel):
    """Request model for adding a tenant."""

    name: str = Field(
        ...,
        description="Tenant name",
        min_length=1,
        max_length=MAX_TENANT_NAME_LENGTH,
    )
    parent_id: str | None = Field(
        default=None, description="Parent tenant ID (hierarchical tenants only)"
    )
    has_own_db: bool = Field(
        default=False, description="Give the tenant a database of its own (sharding)"
    )
    connection_name: str | None = Field(
        default=None, description="Connection holding the tenant's data (sharding)"
    )


class RenameTenantRequest(BaseModel):
    """Request model for renaming a tenant."""

    name: str = Field(
        ...,
        description="New tenant name",
        min_length=1,
        max_length=MAX_TENANT_NAME_LENGTH,
    )


class MoveTenantRequest(BaseModel):
    """Request model for moving a tenant to another database."""

    connection_name: str = Field(
        ..., description="Target connection name", min_length=1
    )
    create_new_db: bool = Field(
        default=False, description="The tenant will own the target database"
    )


class TenantResponse(BaseModel):
    """Response model for tenant."""

    id: str = Field(..., description="Tenant ID (ULID format)")
    name: str = Field(..., description="Tenant name at its own level")
    full_name: str = Field(..., description="Name including parent names")
    parent_id: str | None = Field(default=None, description="Parent tenant ID")
    data_key: str = Field(..., description="Key stamped on the tenant's data rows")
    is_hierarchical: bool = Field(..., description="Tenant is part of a hierarchy")
    has_own_db: bool = Field(..., description="Tenant owns its database")
    connection_name: str | None = Field(
        default=None, description="Connection holding the tenant's data"
    )
    version: int = Field(..., description="Concurrency version")

    @classmethod
    def from_domain(cls, tenant: Tenant) -> TenantResponse:
        """Convert domain Tenant aggregate to API response.

        Args:
            tenant: Tenant domain aggregate

        Returns:
            TenantResponse
        """
        return cls(
            id=tenant.id.value,
            name=tenant.name,
            full_name=tenant.full_name,
            parent_id=tenant.parent_id.value if tenant.parent_id else None,
            data_key=tenant.data_key,
            is_hierarchical=tenant.is_hierarchical,
            has_own_db=tenant.has_own_db,
            connection_name=tenant.connection_name,
            version=tenant.version,
        )


class MoveTenantResponse(BaseModel):
    """Response model for a completed move."""

    tenant_id: str = Field(..., description="Moved tenant ID")
    connection_name: str = Field(..., description="Connection now holding the data")
    has_own_db: bool = Field(..., description="Tenant owns the target database")
    moved_row_count: int = Field(..., description="Number of data rows moved")
    message: str = Field(..., description="Outcome message")


class RedundantCopyResponse(BaseModel):
    """Response model for tenant rows found outside the tenant's store."""

    connection_name: str = Field(..., description="Connection holding the rows")
    row_count: int = Field(..., description="Number of rows found")

    @classmethod
    def from_value(cls, copy: RedundantCopy) -> RedundantCopyResponse:
        """Convert an application RedundantCopy to API response."""
        return cls(connection_name=copy.connection_name, row_count=copy.row_count)
