"""Domain probes for infrastructure observability.

Domain probes provide a high-level instrumentation API oriented around
domain semantics, keeping infrastructure code clean and testable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class ConnectionProbe(Protocol):
    """Domain probe for database connection observability.

    This probe captures domain-significant events related to the named
    connections tenant data stores are reached through, without exposing
    logging implementation details.
    """

    def engine_created(self, connection_name: str, database: str) -> None:
        """Record that an engine was created for a named connection."""
        ...

    def connection_failed(self, connection_name: str, error: Exception) -> None:
        """Record that an engine could not be created for a connection."""
        ...

    def connection_unresolved(self, connection_name: str) -> None:
        """Record that a connection name is not configured."""
        ...

    def engine_disposed(self, connection_name: str) -> None:
        """Record that a connection's engine was disposed."""
        ...

    def with_context(self, context: ObservationContext) -> ConnectionProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultConnectionProbe:
    """Default implementation of ConnectionProbe using structlog.

    Supports observation context for including request-scoped metadata
    with all log events.
    """

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

    def with_context(self, context: ObservationContext) -> DefaultConnectionProbe:
        """Create a new probe with observation context bound."""
        return DefaultConnectionProbe(logger=self._logger, context=context)

    def engine_created(self, connection_name: str, database: str) -> None:
        """Record that an engine was created for a named connection."""
        self._logger.info(
            "database_engine_created",
            connection_name=connection_name,
            database=database,
            **self._get_context_kwargs(),
        )

    def connection_failed(self, connection_name: str, error: Exception) -> None:
        """Record that an engine could not be created for a connection."""
        self._logger.error(
            "database_connection_failed",
            connection_name=connection_name,
            error=str(error),
            **self._get_context_kwargs(),
        )

    def connection_unresolved(self, connection_name: str) -> None:
        """Record that a connection name is not configured."""
        self._logger.warning(
            "database_connection_unresolved",
            connection_name=connection_name,
            **self._get_context_kwargs(),
        )

    def engine_disposed(self, connection_name: str) -> None:
        """Record that a connection's engine was disposed."""
        self._logger.info(
            "database_engine_disposed",
            connection_name=connection_name,
            **self._get_context_kwargs(),
        )
