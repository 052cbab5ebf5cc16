"""Tenant admin service for the tenancy bounded context.

Orchestrates tenant lifecycle operations across the identity store (the
tenants table) and the tenant data stores. Every operation follows the same
shape:

1. Read and validate inside a short identity transaction. Nothing is written
   to any store before validation passes.
2. Let the change service do the data store work. The identity transaction
   is not held open while it runs.
3. Commit the identity change last, re-checking the version read in step 1.

Every public method returns a ``Status``; expected failures never raise.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.exceptions import DatabaseError, UnknownConnectionError
from infrastructure.settings import TenancySettings
from shared_kernel.status import ErrorCode, Status, first_failure
from tenancy.application.locking import TenantLockRegistry
from tenancy.application.observability import (
    DefaultTenantAdminServiceProbe,
    TenantAdminServiceProbe,
)
from tenancy.application.value_objects import RedundantCopy
from tenancy.domain.aggregates import Tenant
from tenancy.domain.exceptions import (
    TenancyConfigurationError,
    TenancyError,
    TenantNotFoundError,
    TenantValidationError,
)
from tenancy.domain.value_objects import TenantId
from tenancy.ports.change_service import (
    ITenantChangeService,
    ITenantChangeServiceFactory,
    StagedMove,
)
from tenancy.ports.repositories import ITenantRepository

T = TypeVar("T")


def _tenant_lock_key(tenant_id: str) -> str:
    return f"tenant:{tenant_id.upper()}"


def _connection_lock_key(connection_name: str) -> str:
    return f"connection:{connection_name}"


class TenantAdminService:
    """Application service for tenant lifecycle administration.

    Handles adding, renaming, deleting and moving tenants. A hierarchical
    subtree shares one lock, keyed on its top-level tenant, so an operation
    on a parent and one on any of its descendants never interleave. Adds and
    moves that target a shared store connection also lock the connection.
    The lock registry should be shared by every service instance in the
    process.
    """

    def __init__(
        self,
        tenant_repository: ITenantRepository,
        session: AsyncSession,
        settings: TenancySettings,
        change_service_factory: ITenantChangeServiceFactory,
        probe: TenantAdminServiceProbe | None = None,
        locks: TenantLockRegistry | None = None,
    ):
        """Initialize TenantAdminService with dependencies.

        Args:
            tenant_repository: Repository for tenant identity persistence
            session: Identity database session for transaction management
            settings: Tenancy settings (tenant type, connections)
            change_service_factory: Supplies the change service per request
            probe: Optional domain probe for observability
            locks: Per-tenant lock registry shared across requests
        """
        self._tenant_repository = tenant_repository
        self._session = session
        self._settings = settings
        self._change_service_factory = change_service_factory
        self._probe = probe or DefaultTenantAdminServiceProbe()
        self._locks = locks if locks is not None else TenantLockRegistry()

    # -- lifecycle operations -------------------------------------------------

    async def add_single_tenant(
        self,
        name: str,
        parent_id: TenantId | str | None = None,
        has_own_db: bool = False,
        connection_name: str | None = None,
    ) -> Status[Tenant]:
        """Add a new tenant.

        Args:
            name: The tenant name (this level's name for hierarchical tenants)
            parent_id: Parent tenant (hierarchical tenant types only)
            has_own_db: Whether the tenant gets a store to itself (sharding)
            connection_name: Store connection (sharding); defaults to the
                configured default connection unless ``has_own_db`` is set

        Returns:
            Status carrying the stored Tenant
        """
        return await self._guard(
            "add_tenant",
            lambda: self._add_single_tenant(
                name, parent_id, has_own_db, connection_name
            ),
            lambda: self._add_lock_keys(name, parent_id, connection_name),
        )

    async def update_tenant_name(
        self, tenant_id: TenantId | str, new_name: str
    ) -> Status[Tenant]:
        """Rename a tenant.

        Only the identity record changes; hierarchical descendants get their
        full names recomputed. Scoped data rows are not touched.

        Returns:
            Status carrying the renamed Tenant
        """
        return await self._guard(
            "rename_tenant",
            lambda: self._update_tenant_name(tenant_id, new_name),
            lambda: self._subtree_lock_keys(tenant_id),
        )

    async def delete_tenant(
        self, tenant_id: TenantId | str
    ) -> Status[ITenantChangeService]:
        """Delete a tenant, its data rows and (hierarchical) its descendants.

        Returns:
            Status carrying the change service, whose ``deleted_tenant_id``
            names the deleted tenant
        """
        return await self._guard(
            "delete_tenant",
            lambda: self._delete_tenant(tenant_id),
            lambda: self._subtree_lock_keys(tenant_id),
        )

    async def move_to_different_database(
        self,
        tenant_id: TenantId | str,
        create_new_db: bool,
        new_connection_name: str,
    ) -> Status[ITenantChangeService]:
        """Move a tenant's data to the store behind another connection.

        Rows are copied to the target and verified before anything is
        deleted from the source. Cancelling the calling task stops the move
        up to that point; once the source rows are being deleted the move
        (source delete and identity commit) runs to completion first.

        Args:
            tenant_id: The tenant to move (top-level for hierarchical types)
            create_new_db: Whether the tenant will own the target store
            new_connection_name: The target connection

        Returns:
            Status carrying the change service, whose ``moved_row_count``
            tells how many rows were moved
        """
        return await self._guard(
            "move_tenant",
            lambda: self._move_to_different_database(
                tenant_id, create_new_db, new_connection_name
            ),
            lambda: self._move_lock_keys(tenant_id, new_connection_name),
        )

    # -- reads and reconciliation ---------------------------------------------

    async def get_tenant(self, tenant_id: TenantId | str) -> Status[Tenant]:
        """Retrieve a tenant by id."""
        return await self._guard("get_tenant", lambda: self._get_tenant(tenant_id))

    async def list_tenants(self) -> Status[list[Tenant]]:
        """List all tenants in creation order."""
        return await self._guard("list_tenants", self._list_tenants)

    async def find_redundant_copies(
        self, tenant_id: TenantId | str
    ) -> Status[list[RedundantCopy]]:
        """Find rows of a tenant in stores other than its current one."""
        return await self._guard(
            "find_redundant_copies", lambda: self._find_redundant_copies(tenant_id)
        )

    async def remove_redundant_copies(
        self, tenant_id: TenantId | str
    ) -> Status[list[RedundantCopy]]:
        """Delete rows of a tenant left in stores other than its current one.

        Refuses to delete anything if the current store holds no rows for
        the tenant, since the leftovers may then be the only copy.

        Returns:
            Status carrying the copies that were removed
        """
        return await self._guard(
            "remove_redundant_copies",
            lambda: self._remove_redundant_copies(tenant_id),
            lambda: self._subtree_lock_keys(tenant_id),
        )

    # -- lock keys -------------------------------------------------------------

    async def _subtree_lock_keys(self, tenant_id: TenantId | str) -> list[str]:
        """Key the lock on the top-level tenant of the tenant's subtree."""
        async with self._session.begin():
            tenant = await self._get_required(tenant_id)
        return [_tenant_lock_key(tenant.root_id)]

    async def _add_lock_keys(
        self,
        name: str,
        parent_id: TenantId | str | None,
        connection_name: str | None,
    ) -> list[str]:
        keys = [f"add:{parent_id or ''}:{(name or '').strip()}"]
        if parent_id is not None:
            if self._settings.is_hierarchical:
                keys.extend(await self._subtree_lock_keys(parent_id))
        elif self._settings.is_sharding:
            keys.append(
                _connection_lock_key(
                    connection_name or self._settings.default_connection_name
                )
            )
        return keys

    async def _move_lock_keys(
        self, tenant_id: TenantId | str, new_connection_name: str
    ) -> list[str]:
        keys = await self._subtree_lock_keys(tenant_id)
        if new_connection_name:
            keys.append(_connection_lock_key(new_connection_name))
        return keys

    # -- implementations -------------------------------------------------------

    async def _add_single_tenant(
        self,
        name: str,
        parent_id: TenantId | str | None,
        has_own_db: bool,
        connection_name: str | None,
    ) -> Status[Tenant]:
        async with self._session.begin():
            parent = None
            if parent_id is not None:
                if not self._settings.is_hierarchical:
                    raise TenantValidationError(
                        "A parent tenant can only be given for hierarchical tenants"
                    )
                parent = await self._get_required(parent_id)

            connection_name, has_own_db = await self._placement_for_new_tenant(
                parent, has_own_db, connection_name
            )

            if self._settings.is_hierarchical:
                tenant = Tenant.create_hierarchical(
                    name,
                    parent=parent,
                    connection_name=connection_name,
                    has_own_db=has_own_db,
                )
            else:
                tenant = Tenant.create_single_level(
                    name, connection_name=connection_name, has_own_db=has_own_db
                )

            if await self._tenant_repository.get_by_full_name(tenant.full_name):
                raise TenantValidationError(
                    f"The tenant name '{tenant.full_name}' is already used"
                )

        change_service = self._change_service_factory.create_change_service()
        prepared = await change_service.create_tenant(tenant)
        if prepared.has_errors:
            return self._failed("add_tenant", prepared)

        async with self._session.begin():
            if parent is not None:
                await self._get_required(parent.id)
            elif tenant.connection_name is not None:
                self._check_store_sharing(
                    tenant.connection_name,
                    tenant.has_own_db,
                    await self._tenant_repository.list_by_connection(
                        tenant.connection_name
                    ),
                )
            stored = await self._tenant_repository.add(tenant)

        self._probe.tenant_added(
            tenant_id=stored.id.value,
            full_name=stored.full_name,
            connection_name=stored.connection_name,
        )
        return Status.ok(
            stored, message=f"Successfully added the new tenant {stored.full_name}."
        )

    async def _update_tenant_name(
        self, tenant_id: TenantId | str, new_name: str
    ) -> Status[Tenant]:
        async with self._session.begin():
            tenant = await self._get_required(tenant_id)
            renamed = tenant.rename(new_name)
            existing = await self._tenant_repository.get_by_full_name(
                renamed.full_name
            )
            if existing is not None and existing.id != tenant.id:
                raise TenantValidationError(
                    f"The tenant name '{renamed.full_name}' is already used"
                )
            descendants = await self._descendants_of(tenant)

        change_service = self._change_service_factory.create_change_service()
        checked = await change_service.rename_tenant(renamed)
        if checked.has_errors:
            return self._failed("rename_tenant", checked)

        async with self._session.begin():
            stored = await self._tenant_repository.update(renamed)
            for child in descendants:
                await self._tenant_repository.update(
                    child.rebase_full_name(tenant.full_name, renamed.full_name)
                )

        self._probe.tenant_renamed(
            tenant_id=stored.id.value,
            old_name=tenant.full_name,
            new_name=stored.full_name,
        )
        return Status.ok(
            stored, message=f"Successfully updated the tenant name to {stored.full_name}."
        )

    async def _delete_tenant(
        self, tenant_id: TenantId | str
    ) -> Status[ITenantChangeService]:
        async with self._session.begin():
            tenant = await self._get_required(tenant_id)
            descendants = await self._descendants_of(tenant)

        change_service = self._change_service_factory.create_change_service()
        deleted = await change_service.delete_tenant(tenant, descendants)
        if deleted.has_errors:
            return self._failed("delete_tenant", deleted)

        async with self._session.begin():
            # Children before parents
            for child in reversed(descendants):
                await self._tenant_repository.delete(child)
            if not await self._tenant_repository.delete(tenant):
                raise TenantNotFoundError(
                    f"The tenant '{tenant.full_name}' was deleted by another request"
                )

        self._probe.tenant_deleted(
            tenant_id=tenant.id.value, descendant_count=len(descendants)
        )
        return Status.ok(
            change_service,
            message=f"Successfully deleted the tenant called '{tenant.full_name}'.",
        )

    async def _move_to_different_database(
        self,
        tenant_id: TenantId | str,
        create_new_db: bool,
        new_connection_name: str,
    ) -> Status[ITenantChangeService]:
        if not self._settings.is_sharding:
            raise TenantValidationError(
                "Moving a tenant to another database requires sharding"
            )
        if not new_connection_name:
            raise TenantValidationError("The connection name of the target is required")
        self._require_known_connection(new_connection_name)

        async with self._session.begin():
            tenant = await self._get_required(tenant_id)
            if not tenant.is_top_level:
                raise TenantValidationError(
                    f"Only top-level tenants can be moved; '{tenant.full_name}' "
                    "moves with its parent"
                )

            current_connection = self._current_connection(tenant)
            if (
                current_connection == new_connection_name
                and tenant.has_own_db == create_new_db
            ):
                raise TenantValidationError(
                    f"The tenant '{tenant.full_name}' is already on the connection "
                    f"'{new_connection_name}'"
                )

            descendants = await self._descendants_of(tenant)
            moving_ids = {tenant.id} | {child.id for child in descendants}
            others = [
                other
                for other in await self._tenant_repository.list_by_connection(
                    new_connection_name
                )
                if other.id not in moving_ids
            ]
            self._check_store_sharing(new_connection_name, create_new_db, others)

        change_service = self._change_service_factory.create_change_service()

        if current_connection == new_connection_name:
            async with self._session.begin():
                await self._relocate(
                    tenant, descendants, new_connection_name, create_new_db
                )
            self._probe.tenant_store_flag_changed(
                tenant_id=tenant.id.value,
                connection_name=new_connection_name,
                has_own_db=create_new_db,
            )
            return Status.ok(
                change_service,
                message=(
                    f"Updated the own-database setting of tenant '{tenant.full_name}'."
                ),
            )

        staged = await change_service.stage_move(
            tenant, new_connection_name, create_new_db, descendants
        )
        if staged.has_errors:
            return self._failed("move_tenant", staged)

        # Past this point the source rows get deleted; finish even if cancelled
        finish = asyncio.ensure_future(
            self._guard(
                "move_tenant",
                lambda: self._complete_move(
                    change_service, staged.result, descendants
                ),
            )
        )
        try:
            return await asyncio.shield(finish)
        except asyncio.CancelledError:
            self._probe.move_cancellation_deferred(tenant_id=tenant.id.value)
            while not finish.done():
                try:
                    await asyncio.shield(finish)
                except asyncio.CancelledError:
                    continue
            raise

    async def _complete_move(
        self,
        change_service: ITenantChangeService,
        staged: StagedMove,
        descendants: list[Tenant],
    ) -> Status[ITenantChangeService]:
        tenant = staged.tenant
        removed = await change_service.complete_move(staged)
        if removed.has_errors:
            reason = removed.get_all_errors("; ")
            self._probe.reconciliation_required(
                tenant_id=tenant.id.value,
                source_connection=staged.source_connection,
                target_connection=staged.target_connection,
                reason=reason,
            )
            return Status.fail(
                f"The data of tenant '{tenant.full_name}' was copied to "
                f"'{staged.target_connection}' but could not be removed from "
                f"'{staged.source_connection}': {reason}. The tenant still uses "
                f"'{staged.source_connection}'; remove the redundant copies on "
                f"'{staged.target_connection}' before retrying the move.",
                ErrorCode.STORE_OPERATION,
            )

        try:
            async with self._session.begin():
                await self._relocate(
                    tenant, descendants, staged.target_connection, staged.has_own_db
                )
        except (TenancyError, SQLAlchemyError) as e:
            reason = e.message if isinstance(e, TenancyError) else str(e)
            self._probe.reconciliation_required(
                tenant_id=tenant.id.value,
                source_connection=staged.source_connection,
                target_connection=staged.target_connection,
                reason=reason,
            )
            return Status.fail(
                f"The data of tenant '{tenant.full_name}' now lives on "
                f"'{staged.target_connection}' but the tenant record could not be "
                f"updated: {reason}. Manual reconciliation is required: point the "
                f"tenant at '{staged.target_connection}'.",
                ErrorCode.STORE_OPERATION,
            )

        self._probe.tenant_moved(
            tenant_id=tenant.id.value,
            source_connection=staged.source_connection,
            target_connection=staged.target_connection,
            row_count=change_service.moved_row_count,
        )
        return Status.ok(change_service, message=removed.message)

    async def _get_tenant(self, tenant_id: TenantId | str) -> Status[Tenant]:
        async with self._session.begin():
            tenant = await self._get_required(tenant_id)
        self._probe.tenant_retrieved(tenant_id=tenant.id.value)
        return Status.ok(tenant)

    async def _list_tenants(self) -> Status[list[Tenant]]:
        async with self._session.begin():
            tenants = await self._tenant_repository.list_all()
        self._probe.tenants_listed(count=len(tenants))
        return Status.ok(tenants)

    async def _find_redundant_copies(
        self, tenant_id: TenantId | str
    ) -> Status[list[RedundantCopy]]:
        async with self._session.begin():
            tenant = await self._get_required(tenant_id)

        change_service = self._change_service_factory.create_change_service()
        return await self._scan_redundant_copies(change_service, tenant)

    async def _remove_redundant_copies(
        self, tenant_id: TenantId | str
    ) -> Status[list[RedundantCopy]]:
        async with self._session.begin():
            tenant = await self._get_required(tenant_id)

        change_service = self._change_service_factory.create_change_service()
        found = await self._scan_redundant_copies(change_service, tenant)
        if found.has_errors or not found.result:
            return found

        current_connection = self._current_connection(tenant)
        live = await change_service.count_tenant_rows(
            current_connection, tenant.data_key
        )
        if live.has_errors:
            return self._failed("remove_redundant_copies", live)
        if not live.result:
            self._probe.reconciliation_required(
                tenant_id=tenant.id.value,
                source_connection=current_connection,
                target_connection=", ".join(c.connection_name for c in found.result),
                reason="current store holds no rows",
            )
            return Status.fail(
                f"The tenant '{tenant.full_name}' has no data on its current "
                f"connection '{current_connection}', so the other copies may be the "
                "only ones. Manual reconciliation is required.",
                ErrorCode.STORE_OPERATION,
            )

        results = [
            await change_service.delete_tenant_rows(copy.connection_name, tenant.data_key)
            for copy in found.result
        ]
        failed = first_failure(*results)
        if failed is not None:
            return self._failed("remove_redundant_copies", failed)

        self._probe.redundant_copies_removed(
            tenant_id=tenant.id.value,
            row_count=sum(result.result or 0 for result in results),
        )
        return Status.ok(
            found.result,
            message=f"Removed {len(found.result)} redundant copies of '{tenant.full_name}'.",
        )

    # -- helpers ---------------------------------------------------------------

    async def _guard(
        self,
        operation: str,
        action: Callable[[], Awaitable[Status[T]]],
        lock_keys: Callable[[], Awaitable[list[str]]] | None = None,
    ) -> Status[T]:
        """Run an operation, converting raised errors into a failed Status.

        The action is only started once the locks named by ``lock_keys`` are
        held. Task cancellation is not converted; it propagates to the caller.
        """
        try:
            if lock_keys is None:
                return await action()
            async with self._locks.hold_all(await lock_keys()):
                return await action()
        except TenancyError as e:
            return self._failed(operation, Status.fail(e.message, e.code))
        except UnknownConnectionError as e:
            return self._failed(operation, Status.fail(str(e), ErrorCode.CONFIGURATION))
        except (SQLAlchemyError, DatabaseError) as e:
            return self._failed(
                operation,
                Status.fail(
                    f"The tenant store reported an error: {e}",
                    ErrorCode.STORE_OPERATION,
                ),
            )
        except Exception as e:
            self._probe.unexpected_error(operation=operation, error=repr(e))
            return Status.fail(
                f"Unexpected error during {operation}: {e}", ErrorCode.STORE_OPERATION
            )

    def _failed(self, operation: str, status: Status) -> Status:
        self._probe.operation_failed(
            operation=operation,
            code=str(status.first_error_code),
            message=status.get_all_errors("; "),
        )
        return status

    async def _get_required(self, tenant_id: TenantId | str) -> Tenant:
        if isinstance(tenant_id, TenantId):
            parsed = tenant_id
        else:
            try:
                parsed = TenantId.from_string(tenant_id)
            except ValueError as e:
                raise TenantValidationError(f"Invalid tenant id: {tenant_id}") from e

        tenant = await self._tenant_repository.get_by_id(parsed)
        if tenant is None:
            self._probe.tenant_not_found(tenant_id=parsed.value)
            raise TenantNotFoundError(f"Could not find the tenant with id {parsed}")
        return tenant

    async def _descendants_of(self, tenant: Tenant) -> list[Tenant]:
        if not tenant.is_hierarchical:
            return []
        return await self._tenant_repository.list_descendants(tenant)

    def _current_connection(self, tenant: Tenant) -> str:
        return tenant.connection_name or self._settings.default_connection_name

    def _require_known_connection(self, connection_name: str) -> None:
        known = {self._settings.default_connection_name, *self._settings.connections}
        if connection_name not in known:
            raise TenancyConfigurationError(
                f"No database connection is configured as '{connection_name}'"
            )

    async def _placement_for_new_tenant(
        self,
        parent: Tenant | None,
        has_own_db: bool,
        connection_name: str | None,
    ) -> tuple[str | None, bool]:
        """Decide the store of a new tenant and check it may be used."""
        if not self._settings.is_sharding:
            if has_own_db or connection_name:
                raise TenantValidationError(
                    "A connection or own database can only be set when sharding "
                    "is turned on"
                )
            return None, False

        if parent is not None:
            if has_own_db or (
                connection_name and connection_name != parent.connection_name
            ):
                raise TenantValidationError(
                    "A child tenant is always stored with its parent"
                )
            return parent.connection_name, parent.has_own_db

        if has_own_db and not connection_name:
            raise TenantValidationError(
                "A tenant with its own database must name the connection to use"
            )
        connection_name = connection_name or self._settings.default_connection_name
        self._require_known_connection(connection_name)

        others = await self._tenant_repository.list_by_connection(connection_name)
        self._check_store_sharing(connection_name, has_own_db, others)
        return connection_name, has_own_db

    @staticmethod
    def _check_store_sharing(
        connection_name: str, has_own_db: bool, others: list[Tenant]
    ) -> None:
        """Check a tenant may join the tenants already on a connection."""
        if has_own_db and others:
            raise TenantValidationError(
                f"The tenant wants its own database but the connection "
                f"'{connection_name}' is already used by other tenants"
            )
        owners = [other for other in others if other.has_own_db]
        if owners:
            raise TenantValidationError(
                f"The database at '{connection_name}' belongs to the tenant "
                f"'{owners[0].full_name}'"
            )

    async def _relocate(
        self,
        tenant: Tenant,
        descendants: list[Tenant],
        connection_name: str,
        has_own_db: bool,
    ) -> None:
        await self._tenant_repository.update(
            tenant.relocate(connection_name, has_own_db)
        )
        for child in descendants:
            await self._tenant_repository.update(
                child.relocate(connection_name, has_own_db)
            )

    async def _scan_redundant_copies(
        self, change_service: ITenantChangeService, tenant: Tenant
    ) -> Status[list[RedundantCopy]]:
        current_connection = self._current_connection(tenant)
        stores = await change_service.list_other_stores(current_connection)
        if stores.has_errors:
            return self._failed("find_redundant_copies", stores)

        copies: list[RedundantCopy] = []
        for connection_name in stores.result or []:
            counted = await change_service.count_tenant_rows(
                connection_name, tenant.data_key
            )
            if counted.has_errors:
                return self._failed("find_redundant_copies", counted)
            if counted.result:
                copies.append(RedundantCopy(connection_name, counted.result))

        if copies:
            self._probe.redundant_copies_found(
                tenant_id=tenant.id.value,
                connection_names=[copy.connection_name for copy in copies],
            )
        return Status.ok(copies)
