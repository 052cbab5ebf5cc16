"""Fixtures wiring the tenant admin service to real SQLite stores."""

import pytest
from sqlalchemy import select

from infrastructure.database.connection_resolver import ConnectionResolver
from infrastructure.database.models import ScopedBase
from infrastructure.settings import TenancySettings
from tenancy.application.services import TenantAdminService
from tenancy.infrastructure.change_services import TenantChangeServiceFactory
from tenancy.infrastructure.models import CompanyModel
from tenancy.infrastructure.query_filter import open_admin_session, open_tenant_session
from tenancy.infrastructure.tenant_repository import TenantRepository


@pytest.fixture
def tenant_repository(identity_session) -> TenantRepository:
    """Repository over the identity database."""
    return TenantRepository(session=identity_session)


@pytest.fixture
def make_settings(store_urls):
    """Build tenancy settings for a tenant type over the test stores."""

    def _make(tenant_type: str = "SingleLevel", **overrides) -> TenancySettings:
        connections = {
            name: url
            for name, url in store_urls.items()
            if name != "DefaultConnection"
        }
        overrides.setdefault("connections", connections)
        return TenancySettings(tenant_type=tenant_type, **overrides)

    return _make


@pytest.fixture
def make_service(identity_session, tenant_repository, resolver, make_settings):
    """Build a TenantAdminService using the real change services."""

    def _make(tenant_type: str = "SingleLevel", **overrides) -> TenantAdminService:
        settings = make_settings(tenant_type, **overrides)
        return TenantAdminService(
            tenant_repository=tenant_repository,
            session=identity_session,
            settings=settings,
            change_service_factory=TenantChangeServiceFactory(resolver, settings),
        )

    return _make


@pytest.fixture
def provision(resolver: ConnectionResolver):
    """Create the scoped tables on a store."""

    async def _provision(connection_name: str) -> None:
        async with resolver.get_engine(connection_name).begin() as conn:
            await conn.run_sync(ScopedBase.metadata.create_all)

    return _provision


@pytest.fixture
def add_company(resolver: ConnectionResolver):
    """Add a company row through a tenant session."""

    async def _add(
        tenant, company_name: str, connection_name: str | None = None
    ) -> None:
        engine = resolver.get_engine(
            connection_name or tenant.connection_name or "DefaultConnection"
        )
        async with open_tenant_session(engine, tenant.data_key) as session:
            async with session.begin():
                session.add(CompanyModel(company_name=company_name))

    return _add


@pytest.fixture
def company_names(resolver: ConnectionResolver):
    """Read the company names stored on a connection, sorted."""

    async def _names(connection_name: str, data_key: str | None = None) -> list[str]:
        stmt = select(CompanyModel.company_name)
        if data_key is not None:
            stmt = stmt.where(CompanyModel.data_key == data_key)
        async with open_admin_session(resolver.get_engine(connection_name)) as session:
            result = await session.execute(stmt)
            return sorted(result.scalars().all())

    return _names


@pytest.fixture
def add_tenants():
    """Add tenants through the admin service and return them."""

    async def _add(service: TenantAdminService, *names: str, **options):
        tenants = []
        for name in names:
            status = await service.add_single_tenant(name, **options)
            assert status.is_valid, status.get_all_errors()
            tenants.append(status.result)
        return tenants

    return _add
