"""Change service protocols (ports) for the tenancy bounded context.

A change service performs the physical data manipulation behind a tenant
lifecycle operation. One implementation exists per tenant topology
(single-level or hierarchical) and sharding combination; a factory picks
the right one from configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from shared_kernel.status import Status
from tenancy.domain.aggregates import Tenant


@dataclass(frozen=True)
class StagedMove:
    """Result of the non-destructive phase of a cross-store move.

    Attributes:
        tenant: The tenant being moved (still pointing at its source store)
        descendants: Descendants moving with it (hierarchical only)
        source_connection: Connection the rows are copied from
        target_connection: Connection the rows were copied to
        has_own_db: Whether the tenant will own the target store
        row_counts: Rows copied per scoped table
    """

    tenant: Tenant
    descendants: tuple[Tenant, ...]
    source_connection: str
    target_connection: str
    has_own_db: bool
    row_counts: dict[str, int] = field(default_factory=dict)

    @property
    def total_rows(self) -> int:
        """Total number of rows copied."""
        return sum(self.row_counts.values())


@runtime_checkable
class ITenantChangeService(Protocol):
    """Physical data operations for one tenant lifecycle request.

    A new instance is created per request; operation metadata such as
    ``deleted_tenant_id`` is exposed on the instance so callers can
    confirm what was done.
    """

    deleted_tenant_id: str | None
    moved_row_count: int

    async def create_tenant(self, tenant: Tenant) -> Status:
        """Provision or attach the store a new tenant will use."""
        ...

    async def rename_tenant(self, tenant: Tenant) -> Status:
        """Check the store of a renamed tenant; scoped rows are not changed."""
        ...

    async def delete_tenant(
        self, tenant: Tenant, descendants: list[Tenant] | None = None
    ) -> Status:
        """Remove every scoped row of the tenant (and descendants) atomically."""
        ...

    async def stage_move(
        self,
        tenant: Tenant,
        target_connection: str,
        has_own_db: bool,
        descendants: list[Tenant] | None = None,
    ) -> Status[StagedMove]:
        """Copy the tenant's rows to the target store and verify them.

        Does not modify the source store.
        """
        ...

    async def complete_move(self, staged: StagedMove) -> Status:
        """Delete the tenant's rows from the source store."""
        ...

    async def list_other_stores(self, connection_name: str) -> Status[list[str]]:
        """Connection names whose database differs from ``connection_name``'s."""
        ...

    async def count_tenant_rows(self, connection_name: str, data_key: str) -> Status[int]:
        """Count rows carrying ``data_key`` (or a descendant key) on a store."""
        ...

    async def delete_tenant_rows(
        self, connection_name: str, data_key: str
    ) -> Status[int]:
        """Delete rows carrying ``data_key`` (or a descendant key) on a store."""
        ...


@runtime_checkable
class ITenantChangeServiceFactory(Protocol):
    """Supplies a change service for the configured tenant type."""

    def create_change_service(self) -> ITenantChangeService:
        """Return a fresh change service instance."""
        ...
