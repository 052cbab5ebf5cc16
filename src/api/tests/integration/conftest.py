"""Integration test fixtures for database tests.

Each test gets its own SQLite files under ``tmp_path``: one identity
database holding the tenants table and two tenant data stores.
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from infrastructure.database.connection_resolver import ConnectionResolver
from infrastructure.database.engines import create_store_engine
from infrastructure.database.models import Base
from tenancy.infrastructure import models as _tenancy_models  # noqa: F401


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (uses SQLite database files)",
    )


@pytest.fixture
def store_urls(tmp_path) -> dict[str, str]:
    """Connection name to URL of the tenant data stores."""
    return {
        "DefaultConnection": f"sqlite+aiosqlite:///{tmp_path / 'main.db'}",
        "OtherConnection": f"sqlite+aiosqlite:///{tmp_path / 'other.db'}",
    }


@pytest_asyncio.fixture
async def identity_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Identity database engine with the tenants table created."""
    engine = create_store_engine(f"sqlite+aiosqlite:///{tmp_path / 'identity.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def identity_session(
    identity_engine: AsyncEngine,
) -> AsyncGenerator[AsyncSession, None]:
    """Provide an identity database session."""
    sessionmaker = async_sessionmaker(identity_engine, expire_on_commit=False)
    async with sessionmaker() as session:
        yield session


@pytest_asyncio.fixture
async def resolver(
    store_urls: dict[str, str],
) -> AsyncGenerator[ConnectionResolver, None]:
    """Connection resolver over the tenant data stores."""
    connection_resolver = ConnectionResolver(store_urls)

    yield connection_resolver

    await connection_resolver.dispose_all()
