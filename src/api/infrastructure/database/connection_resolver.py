"""Named connection resolution for tenant data stores.

Sharded tenants record the *name* of the connection their data lives on.
The resolver turns a configured name into a cached ``AsyncEngine``; an
unknown name is a configuration error.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, NoSuchModuleError
from sqlalchemy.ext.asyncio import AsyncEngine

from infrastructure.database.engines import create_store_engine
from infrastructure.database.exceptions import (
    DatabaseConnectionError,
    UnknownConnectionError,
)
from infrastructure.observability import ConnectionProbe, DefaultConnectionProbe


class ConnectionResolver:
    """Resolve connection names to async engines.

    Engines are created on first use and cached for the resolver's lifetime.
    Uses double-check locking for thread-safe initialization.
    """

    def __init__(
        self,
        connections: Mapping[str, str],
        probe: ConnectionProbe | None = None,
        engine_factory: Callable[[str], AsyncEngine] = create_store_engine,
    ):
        """Initialize the resolver.

        Args:
            connections: Connection name to async database URL
            probe: Optional observability probe
            engine_factory: Creates an engine from a URL (overridable for tests)
        """
        self._connections = dict(connections)
        self._probe = probe or DefaultConnectionProbe()
        self._engine_factory = engine_factory
        self._engines: dict[str, AsyncEngine] = {}
        self._lock = threading.Lock()

    @property
    def connection_names(self) -> list[str]:
        """All configured connection names."""
        return list(self._connections)

    def has_connection(self, connection_name: str) -> bool:
        """True if ``connection_name`` is configured."""
        return connection_name in self._connections

    def shares_store(self, first: str, second: str) -> bool:
        """True if two connection names point at the same database.

        Raises:
            UnknownConnectionError: If either name is not configured
        """
        for connection_name in (first, second):
            if connection_name not in self._connections:
                self._probe.connection_unresolved(connection_name=connection_name)
                raise UnknownConnectionError(connection_name)
        return make_url(self._connections[first]) == make_url(self._connections[second])

    def get_engine(self, connection_name: str) -> AsyncEngine:
        """Get the engine for a named connection.

        Args:
            connection_name: Configured connection name

        Returns:
            The cached async engine for that connection

        Raises:
            UnknownConnectionError: If the name is not configured
            DatabaseConnectionError: If the configured URL cannot be used
        """
        engine = self._engines.get(connection_name)
        if engine is not None:
            return engine

        if connection_name not in self._connections:
            self._probe.connection_unresolved(connection_name=connection_name)
            raise UnknownConnectionError(connection_name)

        with self._lock:
            # Double-check after acquiring lock
            engine = self._engines.get(connection_name)
            if engine is None:
                try:
                    engine = self._engine_factory(self._connections[connection_name])
                except (ArgumentError, NoSuchModuleError) as e:
                    self._probe.connection_failed(
                        connection_name=connection_name, error=e
                    )
                    raise DatabaseConnectionError(
                        f"Cannot create engine for connection '{connection_name}': {e}"
                    ) from e
                self._engines[connection_name] = engine
                self._probe.engine_created(
                    connection_name=connection_name,
                    database=engine.url.render_as_string(hide_password=True),
                )
        return engine

    async def dispose_all(self) -> None:
        """Dispose every engine created so far.

        Should be called on application shutdown. The resolver can be
        reused afterwards; engines are recreated on demand.
        """
        engines = list(self._engines.items())
        self._engines.clear()
        for connection_name, engine in engines:
            await engine.dispose()
            self._probe.engine_disposed(connection_name=connection_name)
