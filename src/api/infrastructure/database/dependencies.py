"""Database dependency injection for FastAPI.

Provides the identity database session factory and the connection resolver
for tenant data stores, with proper transaction management and connection
pooling.
"""

from __future__ import annotations

import threading
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from infrastructure.database.connection_resolver import ConnectionResolver
from infrastructure.database.engines import build_async_url, create_identity_engine
from infrastructure.observability import DefaultConnectionProbe
from infrastructure.settings import get_database_settings, get_tenancy_settings

# Module-level probe for observability
_probe = DefaultConnectionProbe()

# Module-level engine instance (created on first use)
_identity_engine: AsyncEngine | None = None

# Module-level sessionmaker instance (created with engine)
_identity_sessionmaker: async_sessionmaker[AsyncSession] | None = None

# Module-level resolver for tenant data store connections
_connection_resolver: ConnectionResolver | None = None

# Thread lock for safe engine initialization
_engine_lock = threading.Lock()


def get_identity_engine() -> AsyncEngine:
    """Get the identity database engine (singleton).

    Creates engine on first call and caches for subsequent calls.
    Uses double-check locking for thread-safe initialization.
    Also creates and caches the sessionmaker for efficient session creation.

    Returns:
        Configured async engine for the identity database
    """
    global _identity_engine, _identity_sessionmaker
    if _identity_engine is None:
        with _engine_lock:
            # Double-check after acquiring lock
            if _identity_engine is None:
                settings = get_database_settings()
                _identity_engine = create_identity_engine(settings)
                # Create sessionmaker once with the engine
                _identity_sessionmaker = async_sessionmaker(
                    _identity_engine,
                    expire_on_commit=False,
                    class_=AsyncSession,
                )
    return _identity_engine


def get_connection_resolver() -> ConnectionResolver:
    """Get the tenant data store connection resolver (singleton).

    The default connection points at the identity database unless the
    tenancy settings map the default connection name explicitly.

    Returns:
        ConnectionResolver for all configured connections
    """
    global _connection_resolver
    if _connection_resolver is None:
        with _engine_lock:
            if _connection_resolver is None:
                tenancy = get_tenancy_settings()
                connections = {
                    tenancy.default_connection_name: build_async_url(
                        get_database_settings()
                    ),
                    **tenancy.connections,
                }
                _connection_resolver = ConnectionResolver(connections, probe=_probe)
    return _connection_resolver


async def get_write_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an identity database session (FastAPI dependency).

    The session is configured to NOT auto-commit. Callers must explicitly
    manage transactions using `async with session.begin()`.

    Yields:
        AsyncSession for identity database operations
    """
    # Ensure engine and sessionmaker are initialized
    get_identity_engine()
    assert _identity_sessionmaker is not None

    async with _identity_sessionmaker() as session:
        yield session


async def close_database_connections() -> None:
    """Close the identity engine and all tenant store engines.

    Should be called on application shutdown to properly cleanup connections.
    Also resets module state to allow reinitialization.
    """
    global _identity_engine, _identity_sessionmaker, _connection_resolver

    if _identity_engine is not None:
        await _identity_engine.dispose()
        _probe.engine_disposed(connection_name="identity")
        _identity_engine = None
        _identity_sessionmaker = None

    if _connection_resolver is not None:
        await _connection_resolver.dispose_all()
        _connection_resolver = None
