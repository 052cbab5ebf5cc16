"""Application-layer value objects for the tenancy bounded context.

Read-only views returned by the tenant admin service.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RedundantCopy:
    """Rows of a tenant found in a store that is not the tenant's current one.

    Left behind when a move stopped after the target commit but before the
    source rows were deleted.

    Attributes:
        connection_name: The store holding the leftover rows
        row_count: Number of rows carrying the tenant's data key
    """

    connection_name: str
    row_count: int
