"""Change services for single-level tenants.

Each tenant owns exactly the rows stamped with its own data key.
"""

from __future__ import annotations

from sqlalchemy import ColumnElement, Table

from tenancy.infrastructure.change_services.base import (
    AbstractTenantChangeService,
    SharedStoreMixin,
    ShardingStoreMixin,
)


class SingleLevelTenantChangeService(SharedStoreMixin, AbstractTenantChangeService):
    """Single-level tenants sharing the default store."""

    def _data_key_filter(self, table: Table, data_key: str) -> ColumnElement[bool]:
        return table.c.data_key == data_key


class ShardingSingleLevelTenantChangeService(
    ShardingStoreMixin, SingleLevelTenantChangeService
):
    """Single-level tenants spread over named stores.

    A tenant's rows live on ``tenant.connection_name`` and can be moved to
    another connection.
    """
