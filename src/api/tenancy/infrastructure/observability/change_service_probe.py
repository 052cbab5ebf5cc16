"""Domain probe for tenant change service operations.

Captures the physical data work done in tenant data stores: provisioning,
row deletion and the phases of a cross-store move.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class TenantChangeServiceProbe(Protocol):
    """Domain probe for tenant change service operations."""

    def store_prepared(self, connection_name: str, data_key: str) -> None:
        """Record that a store was provisioned or attached for a tenant."""
        ...

    def tenant_rows_deleted(
        self, connection_name: str, data_key: str, row_count: int
    ) -> None:
        """Record that a tenant's rows were deleted from a store."""
        ...

    def move_staged(
        self,
        data_key: str,
        source_connection: str,
        target_connection: str,
        row_count: int,
    ) -> None:
        """Record that rows were copied to the target store and verified."""
        ...

    def move_verification_failed(
        self, data_key: str, target_connection: str, expected: int, actual: int
    ) -> None:
        """Record that the copied row count did not match the source."""
        ...

    def move_target_not_empty(
        self, data_key: str, target_connection: str, row_count: int
    ) -> None:
        """Record that the target store already holds the tenant's rows."""
        ...

    def move_completed(
        self, data_key: str, source_connection: str, row_count: int
    ) -> None:
        """Record that the source rows were removed after a move."""
        ...

    def store_operation_failed(
        self, operation: str, connection_name: str, error: str
    ) -> None:
        """Record that a store operation failed."""
        ...

    def with_context(self, context: ObservationContext) -> TenantChangeServiceProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultTenantChangeServiceProbe:
    """Default implementation of TenantChangeServiceProbe using structlog."""

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
    ) -> DefaultTenantChangeServiceProbe:
        """Create a new probe with observation context bound."""
        return DefaultTenantChangeServiceProbe(logger=self._logger, context=context)

    def store_prepared(self, connection_name: str, data_key: str) -> None:
        """Record that a store was provisioned or attached for a tenant."""
        self._logger.debug(
            "tenant_store_prepared",
            connection_name=connection_name,
            data_key=data_key,
            **self._get_context_kwargs(),
        )

    def tenant_rows_deleted(
        self, connection_name: str, data_key: str, row_count: int
    ) -> None:
        """Record that a tenant's rows were deleted from a store."""
        self._logger.info(
            "tenant_rows_deleted",
            connection_name=connection_name,
            data_key=data_key,
            row_count=row_count,
            **self._get_context_kwargs(),
        )

    def move_staged(
        self,
        data_key: str,
        source_connection: str,
        target_connection: str,
        row_count: int,
    ) -> None:
        """Record that rows were copied to the target store and verified."""
        self._logger.info(
            "tenant_move_staged",
            data_key=data_key,
            source_connection=source_connection,
            target_connection=target_connection,
            row_count=row_count,
            **self._get_context_kwargs(),
        )

    def move_verification_failed(
        self, data_key: str, target_connection: str, expected: int, actual: int
    ) -> None:
        """Record that the copied row count did not match the source."""
        self._logger.error(
            "tenant_move_verification_failed",
            data_key=data_key,
            target_connection=target_connection,
            expected=expected,
            actual=actual,
            **self._get_context_kwargs(),
        )

    def move_target_not_empty(
        self, data_key: str, target_connection: str, row_count: int
    ) -> None:
        """Record that the target store already holds the tenant's rows."""
        self._logger.warning(
            "tenant_move_target_not_empty",
            data_key=data_key,
            target_connection=target_connection,
            row_count=row_count,
            **self._get_context_kwargs(),
        )

    def move_completed(
        self, data_key: str, source_connection: str, row_count: int
    ) -> None:
        """Record that the source rows were removed after a move."""
        self._logger.info(
            "tenant_move_completed",
            data_key=data_key,
            source_connection=source_connection,
            row_count=row_count,
            **self._get_context_kwargs(),
        )

    def store_operation_failed(
        self, operation: str, connection_name: str, error: str
    ) -> None:
        """Record that a store operation failed."""
        self._logger.error(
            "tenant_store_operation_failed",
            operation=operation,
            connection_name=connection_name,
            error=error,
            **self._get_context_kwargs(),
        )
