"""Data-key query filter for tenant-scoped ORM entities.

Sessions carry the data key they were opened for in ``Session.info``. A
``do_orm_execute`` hook adds a loader criteria to every ORM SELECT so that
only rows of that tenant are returned:

- single-level tenants match ``data_key == key``
- hierarchical tenants match ``data_key LIKE key%`` so a parent sees its
  descendants' rows

The reserved ``DATA_KEY_NO_QUERY_FILTER`` value turns the filter off. It can
only be set through ``open_admin_session``, which the tenant change services
use; ``open_tenant_session`` refuses it. A session that reads scoped
entities without any data key fails instead of returning every tenant's
rows.
"""

from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.orm import ORMExecuteState, Session, with_loader_criteria

from infrastructure.database.models import TenantScopedMixin
from shared_kernel.multi_tenancy import (
    DATA_KEY_NO_QUERY_FILTER,
    TenantContext,
    is_no_query_filter,
    require_filterable_data_key,
)

DATA_KEY_INFO = "data_key"
HIERARCHICAL_INFO = "hierarchical"


class UnscopedQueryError(RuntimeError):
    """Raised when tenant-scoped rows are read or written without a data key."""


def open_tenant_session(
    engine: AsyncEngine, data_key: str, hierarchical: bool = False
) -> AsyncSession:
    """Open a session that only sees one tenant's rows.

    Args:
        engine: Engine of the store holding the tenant's data
        data_key: The tenant's data key
        hierarchical: Match descendants' keys by prefix as well

    Raises:
        ValueError: If the data key is empty or the no-filter sentinel
    """
    require_filterable_data_key(data_key)
    return AsyncSession(
        engine,
        expire_on_commit=False,
        info={DATA_KEY_INFO: data_key, HIERARCHICAL_INFO: hierarchical},
    )


def open_context_session(
    engine: AsyncEngine, context: TenantContext, hierarchical: bool = False
) -> AsyncSession:
    """Open a tenant session from a resolved request tenant context."""
    return open_tenant_session(engine, context.data_key, hierarchical=hierarchical)


def open_admin_session(engine: AsyncEngine) -> AsyncSession:
    """Open an unfiltered session for tenant change operations."""
    return AsyncSession(
        engine,
        expire_on_commit=False,
        info={DATA_KEY_INFO: DATA_KEY_NO_QUERY_FILTER, HIERARCHICAL_INFO: False},
    )


def session_data_key(session: Session | AsyncSession) -> str | None:
    """Return the data key a session was opened with, if any."""
    return session.info.get(DATA_KEY_INFO)


def _reads_scoped_entities(execute_state: ORMExecuteState) -> bool:
    return any(
        issubclass(mapper.class_, TenantScopedMixin)
        for mapper in execute_state.all_mappers
    )


@event.listens_for(Session, "do_orm_execute")
def _filter_by_data_key(execute_state: ORMExecuteState) -> None:
    if not execute_state.is_select:
        return
    if execute_state.is_column_load or execute_state.is_relationship_load:
        return
    if not _reads_scoped_entities(execute_state):
        return

    data_key = execute_state.session.info.get(DATA_KEY_INFO)
    if not data_key:
        raise UnscopedQueryError(
            "Tenant-scoped entities can only be read from a tenant or admin session"
        )
    if is_no_query_filter(data_key):
        return

    if execute_state.session.info.get(HIERARCHICAL_INFO):
        criteria = with_loader_criteria(
            TenantScopedMixin,
            lambda cls: cls.data_key.startswith(data_key),
            include_aliases=True,
        )
    else:
        criteria = with_loader_criteria(
            TenantScopedMixin,
            lambda cls: cls.data_key == data_key,
            include_aliases=True,
        )
    execute_state.statement = execute_state.statement.options(criteria)


@event.listens_for(Session, "before_flush")
def _stamp_data_key(session: Session, flush_context, instances) -> None:
    scoped = [obj for obj in session.new if isinstance(obj, TenantScopedMixin)]
    if not scoped:
        return

    data_key = session.info.get(DATA_KEY_INFO)
    for obj in scoped:
        if is_no_query_filter(data_key):
            if not obj.data_key:
                raise UnscopedQueryError(
                    f"{type(obj).__name__} needs an explicit data key in an admin session"
                )
            continue
        if not data_key:
            raise UnscopedQueryError(
                f"{type(obj).__name__} can only be added through a tenant session"
            )
        if not obj.data_key:
            obj.data_key = data_key
        elif not obj.data_key.startswith(data_key):
            raise UnscopedQueryError(
                f"{type(obj).__name__} carries a data key outside this tenant"
            )
