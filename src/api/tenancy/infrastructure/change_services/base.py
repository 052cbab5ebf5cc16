"""Template for tenant change services.

Implements the data work shared by every tenant topology: provisioning a
store's schema, deleting a tenant's rows, and the copy/verify/delete phases
of a cross-store move. Subclasses decide which rows belong to a tenant
(exact data key or data-key prefix) and which store a tenant lives on.

All scoped tables are found through ``ScopedBase.metadata``; each one has a
``data_key`` column. Statements run through admin sessions, so the
tenant query filter never hides rows from these services.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Iterable, Sequence
from typing import Any

from sqlalchemy import (
    ColumnElement,
    MetaData,
    Table,
    delete,
    func,
    insert,
    inspect,
    select,
    tuple_,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from infrastructure.database.connection_resolver import ConnectionResolver
from infrastructure.database.exceptions import (
    DatabaseConnectionError,
    DatabaseError,
    UnknownConnectionError,
)
from infrastructure.database.models import ScopedBase
from infrastructure.settings import TenancySettings
from shared_kernel.status import ErrorCode, Status
from tenancy.domain.aggregates import Tenant
from tenancy.infrastructure import models as _models  # noqa: F401  registers scoped tables
from tenancy.infrastructure.observability import (
    DefaultTenantChangeServiceProbe,
    TenantChangeServiceProbe,
)
from tenancy.infrastructure.query_filter import open_admin_session
from tenancy.ports.change_service import ITenantChangeService, StagedMove

# Errors raised by drivers and engines while talking to a store
STORE_ERRORS = (SQLAlchemyError, DatabaseError, OSError)

PrimaryKey = tuple[Any, ...]


class AbstractTenantChangeService(ITenantChangeService):
    """Template for the tenant change service variants.

    A new instance is created for every admin request, so the operation
    metadata (``deleted_tenant_id``, ``moved_row_count``) describes the
    request that used it.
    """

    supports_moves: bool = False

    def __init__(
        self,
        resolver: ConnectionResolver,
        settings: TenancySettings,
        probe: TenantChangeServiceProbe | None = None,
        metadata: MetaData | None = None,
    ):
        """Initialize the change service.

        Args:
            resolver: Resolves connection names to store engines
            settings: Tenancy settings (default connection, merge policy)
            probe: Optional domain probe for observability
            metadata: Scoped table metadata (defaults to ScopedBase.metadata)
        """
        self._resolver = resolver
        self._settings = settings
        self._probe = probe or DefaultTenantChangeServiceProbe()
        self._metadata = metadata if metadata is not None else ScopedBase.metadata
        self.deleted_tenant_id: str | None = None
        self.moved_row_count: int = 0

    @abstractmethod
    def _data_key_filter(self, table: Table, data_key: str) -> ColumnElement[bool]:
        """Build the WHERE clause selecting a tenant's rows in ``table``."""
        ...

    @abstractmethod
    def _connection_for(self, tenant: Tenant) -> str:
        """Return the connection name of the store holding a tenant's rows."""
        ...

    # -- ITenantChangeService -------------------------------------------------

    async def create_tenant(self, tenant: Tenant) -> Status:
        """Provision the schema of the store a new tenant will use."""
        connection_name = self._connection_for(tenant)
        try:
            engine = self._resolver.get_engine(connection_name)
            await self._provision(engine)
        except STORE_ERRORS as e:
            return self._store_failure("prepare the store", connection_name, e)

        self._probe.store_prepared(connection_name, tenant.data_key)
        return Status.ok(message=f"Prepared the store for tenant '{tenant.full_name}'")

    async def rename_tenant(self, tenant: Tenant) -> Status:
        """Check the renamed tenant's store is reachable.

        Scoped rows carry the data key, not the name, so nothing changes.
        """
        connection_name = self._connection_for(tenant)
        try:
            self._resolver.get_engine(connection_name)
        except STORE_ERRORS as e:
            return self._store_failure("resolve the store", connection_name, e)
        return Status.ok(message=f"Renamed tenant to '{tenant.full_name}'")

    async def delete_tenant(
        self, tenant: Tenant, descendants: list[Tenant] | None = None
    ) -> Status:
        """Delete every scoped row of the tenant in one transaction."""
        connection_name = self._connection_for(tenant)
        try:
            engine = self._resolver.get_engine(connection_name)
            deleted = await self._delete_rows(engine, tenant.data_key)
        except STORE_ERRORS as e:
            return self._store_failure("delete the tenant's data", connection_name, e)

        self.deleted_tenant_id = tenant.id.value
        self._probe.tenant_rows_deleted(connection_name, tenant.data_key, deleted)
        return Status.ok(
            deleted,
            message=f"Deleted tenant '{tenant.full_name}' and {deleted} data rows",
        )

    async def stage_move(
        self,
        tenant: Tenant,
        target_connection: str,
        has_own_db: bool,
        descendants: list[Tenant] | None = None,
    ) -> Status[StagedMove]:
        """Copy the tenant's rows into the target store, commit, then verify.

        The source store is only read. If verification fails the copied rows
        are removed again.
        """
        if not self.supports_moves:
            return Status.fail(
                "Moving a tenant to another database requires sharding",
                ErrorCode.VALIDATION,
            )

        source_connection = self._connection_for(tenant)
        data_key = tenant.data_key
        try:
            if self._resolver.shares_store(source_connection, target_connection):
                return Status.fail(
                    f"The connections '{source_connection}' and "
                    f"'{target_connection}' point at the same database",
                    ErrorCode.VALIDATION,
                )
            source_engine = self._resolver.get_engine(source_connection)
            target_engine = self._resolver.get_engine(target_connection)
            await self._provision(target_engine)

            existing = await self._count_rows(target_engine, data_key)
            existing_total = sum(existing.values())
            if existing_total and not self._settings.allow_merge_into_existing_data:
                self._probe.move_target_not_empty(
                    data_key, target_connection, existing_total
                )
                return Status.fail(
                    f"The database at '{target_connection}' already holds data "
                    f"for tenant '{tenant.full_name}'",
                    ErrorCode.VALIDATION,
                )

            source_rows = await self._read_rows(source_engine, data_key)
            inserted = await self._copy_rows(
                target_engine, source_rows, merge=existing_total > 0
            )
        except STORE_ERRORS as e:
            return self._store_failure("copy the tenant's data", target_connection, e)

        try:
            copied = await self._count_rows(target_engine, data_key)
        except STORE_ERRORS as e:
            await self._discard_copies(target_engine, target_connection, inserted)
            return self._store_failure("verify the copied data", target_connection, e)

        for table, keys in inserted.items():
            expected = existing.get(table.name, 0) + len(keys)
            actual = copied.get(table.name, 0)
            if actual != expected:
                self._probe.move_verification_failed(
                    data_key, target_connection, expected, actual
                )
                await self._discard_copies(target_engine, target_connection, inserted)
                return Status.fail(
                    f"Copying tenant '{tenant.full_name}' to '{target_connection}' "
                    f"could not be verified: table '{table.name}' holds {actual} "
                    f"rows, expected {expected}. The source data was not changed.",
                    ErrorCode.STORE_OPERATION,
                )

        staged = StagedMove(
            tenant=tenant,
            descendants=tuple(descendants or ()),
            source_connection=source_connection,
            target_connection=target_connection,
            has_own_db=has_own_db,
            row_counts={table.name: len(keys) for table, keys in inserted.items()},
        )
        self._probe.move_staged(
            data_key, source_connection, target_connection, staged.total_rows
        )
        return Status.ok(staged)

    async def complete_move(self, staged: StagedMove) -> Status:
        """Delete the moved rows from the source store in one transaction."""
        data_key = staged.tenant.data_key
        try:
            engine = self._resolver.get_engine(staged.source_connection)
            deleted = await self._delete_rows(engine, data_key)
        except STORE_ERRORS as e:
            return self._store_failure(
                "delete the moved data from the source", staged.source_connection, e
            )

        self.moved_row_count = staged.total_rows
        self._probe.move_completed(data_key, staged.source_connection, deleted)
        return Status.ok(
            deleted,
            message=(
                f"Moved tenant '{staged.tenant.full_name}' from "
                f"'{staged.source_connection}' to '{staged.target_connection}'"
            ),
        )

    async def list_other_stores(self, connection_name: str) -> Status[list[str]]:
        """Configured connections that reach a different database.

        Without sharding every tenant shares one store, so there are none.
        """
        if not self.supports_moves:
            return Status.ok([])
        try:
            others = [
                name
                for name in self._resolver.connection_names
                if name != connection_name
                and not self._resolver.shares_store(name, connection_name)
            ]
        except STORE_ERRORS as e:
            return self._store_failure("list the stores", connection_name, e)
        return Status.ok(others)

    async def count_tenant_rows(
        self, connection_name: str, data_key: str
    ) -> Status[int]:
        """Count the rows a tenant owns on a store."""
        try:
            engine = self._resolver.get_engine(connection_name)
            counts = await self._count_rows(engine, data_key)
        except STORE_ERRORS as e:
            return self._store_failure("count the tenant's data", connection_name, e)
        return Status.ok(sum(counts.values()))

    async def delete_tenant_rows(
        self, connection_name: str, data_key: str
    ) -> Status[int]:
        """Delete the rows a tenant owns on a store."""
        try:
            engine = self._resolver.get_engine(connection_name)
            deleted = await self._delete_rows(engine, data_key)
        except STORE_ERRORS as e:
            return self._store_failure("delete the tenant's data", connection_name, e)

        self._probe.tenant_rows_deleted(connection_name, data_key, deleted)
        return Status.ok(deleted)

    # -- store helpers ----------------------------------------------------------

    def _scoped_tables(self) -> list[Table]:
        """Scoped tables in dependency order (parents first)."""
        return [
            table for table in self._metadata.sorted_tables if "data_key" in table.c
        ]

    async def _provision(self, engine: AsyncEngine) -> None:
        async with engine.begin() as conn:
            await conn.run_sync(self._metadata.create_all)

    async def _existing_tables(self, engine: AsyncEngine) -> list[Table]:
        """Scoped tables that exist on a store (stores may be unprovisioned)."""
        async with engine.connect() as conn:
            names = set(
                await conn.run_sync(
                    lambda sync_conn: inspect(sync_conn).get_table_names()
                )
            )
        return [table for table in self._scoped_tables() if table.name in names]

    async def _count_rows(self, engine: AsyncEngine, data_key: str) -> dict[str, int]:
        tables = await self._existing_tables(engine)
        counts: dict[str, int] = {}
        async with open_admin_session(engine) as session:
            for table in tables:
                stmt = (
                    select(func.count())
                    .select_from(table)
                    .where(self._data_key_filter(table, data_key))
                )
                counts[table.name] = (await session.execute(stmt)).scalar_one()
        return counts

    async def _delete_rows(self, engine: AsyncEngine, data_key: str) -> int:
        tables = await self._existing_tables(engine)
        deleted = 0
        async with open_admin_session(engine) as session:
            async with session.begin():
                # Children before parents
                for table in reversed(tables):
                    result = await session.execute(
                        delete(table).where(self._data_key_filter(table, data_key))
                    )
                    deleted += result.rowcount or 0
        return deleted

    async def _read_rows(
        self, engine: AsyncEngine, data_key: str
    ) -> dict[Table, list[dict[str, Any]]]:
        tables = await self._existing_tables(engine)
        rows: dict[Table, list[dict[str, Any]]] = {}
        async with open_admin_session(engine) as session:
            for table in tables:
                result = await session.execute(
                    select(table).where(self._data_key_filter(table, data_key))
                )
                rows[table] = [dict(row._mapping) for row in result]
        return rows

    async def _copy_rows(
        self,
        engine: AsyncEngine,
        rows: dict[Table, list[dict[str, Any]]],
        merge: bool,
    ) -> dict[Table, list[PrimaryKey]]:
        """Insert rows into a store in one transaction.

        When merging, rows whose primary key already exists are skipped.

        Returns:
            Primary keys inserted per table
        """
        inserted: dict[Table, list[PrimaryKey]] = {}
        async with open_admin_session(engine) as session:
            async with session.begin():
                for table, table_rows in rows.items():
                    if merge:
                        present = await self._primary_keys(
                            session,
                            table,
                            (_primary_key(table, row) for row in table_rows),
                        )
                        table_rows = [
                            row
                            for row in table_rows
                            if _primary_key(table, row) not in present
                        ]
                    if table_rows:
                        await session.execute(insert(table), table_rows)
                    inserted[table] = [_primary_key(table, row) for row in table_rows]
        return inserted

    async def _primary_keys(
        self, session, table: Table, keys: Iterable[PrimaryKey]
    ) -> set[PrimaryKey]:
        wanted = list(keys)
        if not wanted:
            return set()
        columns = list(table.primary_key.columns)
        result = await session.execute(
            select(*columns).where(_primary_key_in(columns, wanted))
        )
        return {tuple(row) for row in result}

    async def _discard_copies(
        self,
        engine: AsyncEngine,
        connection_name: str,
        inserted: dict[Table, list[PrimaryKey]],
    ) -> None:
        """Remove rows inserted by a failed move; pre-existing rows are kept."""
        try:
            async with open_admin_session(engine) as session:
                async with session.begin():
                    for table in reversed(list(inserted)):
                        keys = inserted[table]
                        if keys:
                            columns = list(table.primary_key.columns)
                            await session.execute(
                                delete(table).where(_primary_key_in(columns, keys))
                            )
        except STORE_ERRORS as e:
            self._probe.store_operation_failed(
                "discard_staged_copies", connection_name, str(e)
            )

    def _store_failure(
        self, action: str, connection_name: str, error: Exception
    ) -> Status:
        if isinstance(error, (UnknownConnectionError, DatabaseConnectionError)):
            return Status.fail(str(error), ErrorCode.CONFIGURATION)
        self._probe.store_operation_failed(action, connection_name, str(error))
        return Status.fail(
            f"Failed to {action} on connection '{connection_name}': {error}",
            ErrorCode.STORE_OPERATION,
        )


class ShardingStoreMixin:
    """Places each tenant on the store named by its connection name."""

    supports_moves = True
    _settings: TenancySettings

    def _connection_for(self, tenant: Tenant) -> str:
        return tenant.connection_name or self._settings.default_connection_name


class SharedStoreMixin:
    """Places every tenant on the default connection."""

    supports_moves = False
    _settings: TenancySettings

    def _connection_for(self, tenant: Tenant) -> str:
        return self._settings.default_connection_name


def _primary_key(table: Table, row: dict[str, Any]) -> PrimaryKey:
    return tuple(row[column.name] for column in table.primary_key.columns)


def _primary_key_in(columns: Sequence, keys: list[PrimaryKey]) -> ColumnElement[bool]:
    if len(columns) == 1:
        return columns[0].in_([key[0] for key in keys])
    return tuple_(*columns).in_(keys)
