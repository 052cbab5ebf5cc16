"""Multi-tenancy primitives shared across bounded contexts.

Holds the data-key vocabulary used to scope tenant data: the reserved
no-filter sentinel and the resolved tenant context carried by normal
(non-administrative) request paths.
"""

from shared_kernel.multi_tenancy.data_key import (
    DATA_KEY_NO_QUERY_FILTER,
    is_no_query_filter,
    require_filterable_data_key,
)
from shared_kernel.multi_tenancy.tenant_context import TenantContext

__all__ = [
    "DATA_KEY_NO_QUERY_FILTER",
    "TenantContext",
    "is_no_query_filter",
    "require_filterable_data_key",
]
