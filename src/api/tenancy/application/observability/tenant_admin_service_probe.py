"""Protocol for tenant admin service observability.

Defines the interface for domain probes that capture application-level
domain events for tenant lifecycle operations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class TenantAdminServiceProbe(Protocol):
    """Domain probe for tenant admin service operations."""

    def tenant_added(
        self, tenant_id: str, full_name: str, connection_name: str | None
    ) -> None:
        """Record that a tenant was added."""
        ...

    def tenant_renamed(self, tenant_id: str, old_name: str, new_name: str) -> None:
        """Record that a tenant was renamed."""
        ...

    def tenant_deleted(self, tenant_id: str, descendant_count: int) -> None:
        """Record that a tenant (and its descendants) was deleted."""
        ...

    def tenant_moved(
        self,
        tenant_id: str,
        source_connection: str,
        target_connection: str,
        row_count: int,
    ) -> None:
        """Record that a tenant's data was moved to another store."""
        ...

    def tenant_store_flag_changed(
        self, tenant_id: str, connection_name: str, has_own_db: bool
    ) -> None:
        """Record that only the own-database flag of a tenant changed."""
        ...

    def tenant_retrieved(self, tenant_id: str) -> None:
        """Record that a tenant was retrieved."""
        ...

    def tenants_listed(self, count: int) -> None:
        """Record that tenants were listed."""
        ...

    def tenant_not_found(self, tenant_id: str) -> None:
        """Record that a tenant was not found."""
        ...

    def move_cancellation_deferred(self, tenant_id: str) -> None:
        """Record that a cancelled move is finishing its destructive phase."""
        ...

    def reconciliation_required(
        self,
        tenant_id: str,
        source_connection: str,
        target_connection: str,
        reason: str,
    ) -> None:
        """Record that a move left stores needing manual reconciliation."""
        ...

    def redundant_copies_found(self, tenant_id: str, connection_names: list[str]) -> None:
        """Record that a tenant's rows were found outside its current store."""
        ...

    def redundant_copies_removed(self, tenant_id: str, row_count: int) -> None:
        """Record that leftover rows of a tenant were removed."""
        ...

    def operation_failed(self, operation: str, code: str, message: str) -> None:
        """Record that an operation ended with a failed status."""
        ...

    def unexpected_error(self, operation: str, error: str) -> None:
        """Record that an operation raised an unexpected exception."""
        ...

    def with_context(self, context: ObservationContext) -> TenantAdminServiceProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultTenantAdminServiceProbe:
    """Default implementation of TenantAdminServiceProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(
        self, context: ObservationContext
    ) -> DefaultTenantAdminServiceProbe:
        """Create a new probe with observation context bound."""
        return DefaultTenantAdminServiceProbe(logger=self._logger, context=context)

    def tenant_added(
        self, tenant_id: str, full_name: str, connection_name: str | None
    ) -> None:
        """Record that a tenant was added."""
        self._logger.info(
            "tenant_added",
            tenant_id=tenant_id,
            full_name=full_name,
            connection_name=connection_name,
            **self._get_context_kwargs(),
        )

    def tenant_renamed(self, tenant_id: str, old_name: str, new_name: str) -> None:
        """Record that a tenant was renamed."""
        self._logger.info(
            "tenant_renamed",
            tenant_id=tenant_id,
            old_name=old_name,
            new_name=new_name,
            **self._get_context_kwargs(),
        )

    def tenant_deleted(self, tenant_id: str, descendant_count: int) -> None:
        """Record that a tenant (and its descendants) was deleted."""
        self._logger.info(
            "tenant_deleted",
            tenant_id=tenant_id,
            descendant_count=descendant_count,
            **self._get_context_kwargs(),
        )

    def tenant_moved(
        self,
        tenant_id: str,
        source_connection: str,
        target_connection: str,
        row_count: int,
    ) -> None:
        """Record that a tenant's data was moved to another store."""
        self._logger.info(
            "tenant_moved",
            tenant_id=tenant_id,
            source_connection=source_connection,
            target_connection=target_connection,
            row_count=row_count,
            **self._get_context_kwargs(),
        )

    def tenant_store_flag_changed(
        self, tenant_id: str, connection_name: str, has_own_db: bool
    ) -> None:
        """Record that only the own-database flag of a tenant changed."""
        self._logger.info(
            "tenant_store_flag_changed",
            tenant_id=tenant_id,
            connection_name=connection_name,
            has_own_db=has_own_db,
            **self._get_context_kwargs(),
        )

    def tenant_retrieved(self, tenant_id: str) -> None:
        """Record that a tenant was retrieved."""
        self._logger.debug(
            "tenant_retrieved",
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def tenants_listed(self, count: int) -> None:
        """Record that tenants were listed."""
        self._logger.debug(
            "tenants_listed",
            count=count,
            **self._get_context_kwargs(),
        )

    def tenant_not_found(self, tenant_id: str) -> None:
        """Record that a tenant was not found."""
        self._logger.debug(
            "tenant_not_found",
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def move_cancellation_deferred(self, tenant_id: str) -> None:
        """Record that a cancelled move is finishing its destructive phase."""
        self._logger.warning(
            "tenant_move_cancellation_deferred",
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def reconciliation_required(
        self,
        tenant_id: str,
        source_connection: str,
        target_connection: str,
        reason: str,
    ) -> None:
        """Record that a move left stores needing manual reconciliation."""
        self._logger.error(
            "tenant_reconciliation_required",
            tenant_id=tenant_id,
            source_connection=source_connection,
            target_connection=target_connection,
            reason=reason,
            **self._get_context_kwargs(),
        )

    def redundant_copies_found(self, tenant_id: str, connection_names: list[str]) -> None:
        """Record that a tenant's rows were found outside its current store."""
        self._logger.warning(
            "tenant_redundant_copies_found",
            tenant_id=tenant_id,
            connection_names=connection_names,
            **self._get_context_kwargs(),
        )

    def redundant_copies_removed(self, tenant_id: str, row_count: int) -> None:
        """Record that leftover rows of a tenant were removed."""
        self._logger.info(
            "tenant_redundant_copies_removed",
            tenant_id=tenant_id,
            row_count=row_count,
            **self._get_context_kwargs(),
        )

    def operation_failed(self, operation: str, code: str, message: str) -> None:
        """Record that an operation ended with a failed status."""
        self._logger.warning(
            "tenant_operation_failed",
            operation=operation,
            code=code,
            message=message,
            **self._get_context_kwargs(),
        )

    def unexpected_error(self, operation: str, error: str) -> None:
        """Record that an operation raised an unexpected exception."""
        self._logger.error(
            "tenant_operation_unexpected_error",
            operation=operation,
            error=error,
            **self._get_context_kwargs(),
        )
