"""Change services for hierarchical tenants.

A descendant's data key starts with its ancestors' keys, so matching on the
key prefix selects a tenant together with its whole subtree. Descendants
always live in the store of their top-level tenant.
"""

from __future__ import annotations

from sqlalchemy import ColumnElement, Table

from shared_kernel.status import ErrorCode, Status
from tenancy.domain.aggregates import Tenant
from tenancy.infrastructure.change_services.base import (
    AbstractTenantChangeService,
    SharedStoreMixin,
    ShardingStoreMixin,
)
from tenancy.ports.change_service import StagedMove


class _HierarchicalTenantChangeService(AbstractTenantChangeService):
    """Prefix matching and subtree checks shared by both hierarchical variants."""

    def _data_key_filter(self, table: Table, data_key: str) -> ColumnElement[bool]:
        return table.c.data_key.startswith(data_key, autoescape=True)

    async def delete_tenant(
        self, tenant: Tenant, descendants: list[Tenant] | None = None
    ) -> Status:
        """Delete the rows of the tenant and every descendant."""
        outside = self._outside_subtree(tenant, descendants)
        if outside:
            return Status.fail(
                f"The tenants {outside} are not descendants of '{tenant.full_name}'",
                ErrorCode.VALIDATION,
            )

        status = await super().delete_tenant(tenant, descendants)
        if status.is_valid and descendants:
            status.message = (
                f"Deleted tenant '{tenant.full_name}', its {len(descendants)} "
                f"descendants and {status.result} data rows"
            )
        return status

    async def stage_move(
        self,
        tenant: Tenant,
        target_connection: str,
        has_own_db: bool,
        descendants: list[Tenant] | None = None,
    ) -> Status[StagedMove]:
        """Copy the rows of a top-level tenant and its descendants."""
        if not tenant.is_top_level:
            return Status.fail(
                f"Only top-level tenants can be moved; '{tenant.full_name}' "
                "moves with its parent",
                ErrorCode.VALIDATION,
            )
        outside = self._outside_subtree(tenant, descendants)
        if outside:
            return Status.fail(
                f"The tenants {outside} are not descendants of '{tenant.full_name}'",
                ErrorCode.VALIDATION,
            )
        return await super().stage_move(
            tenant, target_connection, has_own_db, descendants
        )

    @staticmethod
    def _outside_subtree(
        tenant: Tenant, descendants: list[Tenant] | None
    ) -> list[str]:
        return [
            child.full_name
            for child in descendants or []
            if not child.is_descendant_of(tenant)
        ]


class HierarchicalTenantChangeService(
    SharedStoreMixin, _HierarchicalTenantChangeService
):
    """Hierarchical tenants sharing the default store."""


class ShardingHierarchicalTenantChangeService(
    ShardingStoreMixin, _HierarchicalTenantChangeService
):
    """Hierarchical tenants whose top-level tenants choose a store.

    Moving a top-level tenant moves its whole subtree.
    """
