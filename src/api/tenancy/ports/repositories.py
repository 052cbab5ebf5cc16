"""Repository protocols (ports) for the tenancy bounded context."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from tenancy.domain.aggregates import Tenant
from tenancy.domain.value_objects import TenantId


@runtime_checkable
class ITenantRepository(Protocol):
    """Repository for Tenant aggregate persistence in the identity store.

    Writes are flushed, not committed; the caller owns the transaction.
    """

    async def add(self, tenant: Tenant) -> Tenant:
        """Insert a new tenant.

        Args:
            tenant: The unsaved Tenant aggregate

        Returns:
            The tenant as stored (with version and created_at set)

        Raises:
            TenantValidationError: If the full name is already taken
        """
        ...

    async def update(self, tenant: Tenant) -> Tenant:
        """Persist changes to an existing tenant.

        The tenant's ``version`` must match the stored version.

        Args:
            tenant: The modified Tenant aggregate

        Returns:
            The tenant as stored (with the new version)

        Raises:
            TenantNotFoundError: If the tenant no longer exists
            TenantConcurrencyError: If the stored version differs
            TenantValidationError: If the full name is already taken
        """
        ...

    async def get_by_id(self, tenant_id: TenantId) -> Tenant | None:
        """Retrieve a tenant by its ID.

        Args:
            tenant_id: The unique identifier of the tenant

        Returns:
            The Tenant aggregate, or None if not found
        """
        ...

    async def get_by_full_name(self, full_name: str) -> Tenant | None:
        """Retrieve a tenant by its full name.

        Args:
            full_name: The tenant's full name

        Returns:
            The Tenant aggregate, or None if not found
        """
        ...

    async def list_all(self) -> list[Tenant]:
        """List all tenants in creation order."""
        ...

    async def list_descendants(self, tenant: Tenant) -> list[Tenant]:
        """List all descendants of a hierarchical tenant, parents first."""
        ...

    async def list_by_connection(self, connection_name: str) -> list[Tenant]:
        """List the tenants whose data lives on a connection."""
        ...

    async def delete(self, tenant: Tenant) -> bool:
        """Delete a tenant.

        Args:
            tenant: The Tenant aggregate to delete

        Returns:
            True if deleted, False if not found

        Raises:
            TenantConcurrencyError: If the stored version differs
        """
        ...
