"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from infrastructure.database.dependencies import (
    close_database_connections,
    get_connection_resolver,
    get_identity_engine,
)
from infrastructure.database.models import Base
from infrastructure.logging import configure_logging
from infrastructure.observability import DefaultStartupProbe
from infrastructure.settings import get_settings, get_tenancy_settings
from infrastructure.version import __version__
from tenancy.infrastructure import models as _tenancy_models  # noqa: F401  registers tables
from tenancy.presentation import router as tenancy_router


@asynccontextmanager
async def tenant_admin_lifespan(app: FastAPI):
    """Application lifespan context.

    Manages:
    - Logging configuration
    - Optional creation of the identity tables
    - Engine lifecycle (created lazily, disposed on shutdown)
    """
    configure_logging()
    probe = DefaultStartupProbe()
    tenancy = get_tenancy_settings()

    if tenancy.create_schema_on_startup:
        engine = get_identity_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        probe.identity_schema_created(
            database=engine.url.render_as_string(hide_password=True)
        )

    probe.application_started(
        tenant_type=tenancy.tenant_type.name or str(tenancy.tenant_type.value),
        connection_names=get_connection_resolver().connection_names,
    )

    yield

    await close_database_connections()
    probe.application_stopped()


def create_app() -> FastAPI:
    """Build the tenant admin application."""
    settings = get_settings()
    application = FastAPI(
        title=settings.app_name,
        description="Tenant administration with data-key isolation and sharding",
        version=__version__,
        lifespan=tenant_admin_lifespan,
        debug=settings.debug,
    )

    # Include Tenancy bounded context routes
    application.include_router(tenancy_router)

    @application.get("/health")
    def health():
        """Basic health check endpoint."""
        return {"status": "ok"}

    return application


app = create_app()
