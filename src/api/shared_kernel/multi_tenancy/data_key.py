"""Data-key values used to scope tenant rows.

Every tenant-scoped row is stamped with its tenant's data key. Reads are
filtered on it unless the session was opened with the reserved
``DATA_KEY_NO_QUERY_FILTER`` value, which only administrative tenant
change code may use.
"""

from __future__ import annotations

DATA_KEY_NO_QUERY_FILTER = "NoQueryFilter"


def is_no_query_filter(data_key: str | None) -> bool:
    """Return True if ``data_key`` is the no-filter sentinel."""
    return data_key == DATA_KEY_NO_QUERY_FILTER


def require_filterable_data_key(data_key: str | None) -> str:
    """Validate a data key supplied by a normal (filtered) read path.

    Args:
        data_key: The tenant data key to filter on

    Returns:
        The unchanged data key

    Raises:
        ValueError: If the key is empty or is the no-filter sentinel
    """
    if not data_key:
        raise ValueError("A tenant data key is required for tenant-scoped access")
    if is_no_query_filter(data_key):
        raise ValueError(
            "The no-query-filter data key is reserved for tenant administration"
        )
    return data_key
