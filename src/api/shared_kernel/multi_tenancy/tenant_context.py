"""Tenant context value object for resolved tenant identification.

This module contains the pure value object that represents a resolved
tenant context. It is framework-agnostic and contains no business logic,
making it safe for the shared kernel.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared_kernel.multi_tenancy.data_key import require_filterable_data_key


@dataclass(frozen=True)
class TenantContext:
    """Resolved tenant context for the current request.

    This is a shared kernel value object used across bounded contexts
    to carry the resolved tenant identity into tenant-scoped queries.
    It can never carry the no-filter sentinel.

    Attributes:
        tenant_id: The validated tenant identifier as a string.
        data_key: The tenant's data key used to filter scoped rows.
        connection_name: Name of the store holding the tenant's data, or
            None when sharding is not in use.
    """

    tenant_id: str
    data_key: str
    connection_name: str | None = None

    def __post_init__(self) -> None:
        require_filterable_data_key(self.data_key)
