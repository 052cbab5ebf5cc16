"""Application settings using pydantic-settings.

Settings are loaded from environment variables with sensible defaults
for development. Production deployments should set all values explicitly.
"""

from functools import lru_cache
from typing import Any

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url

from tenancy.domain.value_objects import TenantType


class DatabaseSettings(BaseSettings):
    """Identity database connection settings.

    The identity database holds the tenants table. It also serves as the
    default tenant data store unless the tenancy settings map the default
    connection name to another URL.

    Environment variables:
        AUTHP_DB_URL: Full SQLAlchemy async URL; overrides the fields below
        AUTHP_DB_HOST: Database host (default: localhost)
        AUTHP_DB_PORT: Database port (default: 5432)
        AUTHP_DB_DATABASE: Database name (default: authp)
        AUTHP_DB_USERNAME: Database user (default: authp)
        AUTHP_DB_PASSWORD: Database password (required in production)
        AUTHP_DB_POOL_MIN_CONNECTIONS: Minimum connections in pool (default: 2)
        AUTHP_DB_POOL_MAX_CONNECTIONS: Maximum connections in pool (default: 10)
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTHP_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: str | None = Field(
        default=None,
        description="Full async database URL (e.g. sqlite+aiosqlite:///./authp.db)",
    )
    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    database: str = Field(default="authp", description="Database name")
    username: str = Field(default="authp", description="Database username")
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Database password",
    )
    pool_min_connections: int = Field(
        default=2,
        description="Minimum connections in pool",
        ge=1,
        le=100,
    )
    pool_max_connections: int = Field(
        default=10,
        description="Maximum connections in pool",
        ge=1,
        le=100,
    )

    @model_validator(mode="after")
    def validate_pool_settings(self) -> "DatabaseSettings":
        """Validate pool max >= min."""
        if self.pool_max_connections < self.pool_min_connections:
            raise ValueError(
                f"pool_max_connections ({self.pool_max_connections}) must be >= "
                f"pool_min_connections ({self.pool_min_connections})"
            )
        return self

    @property
    def connection_string(self) -> str:
        """Generate a connection string (without password for logging)."""
        if self.url is not None:
            return make_url(self.url).render_as_string(hide_password=True)
        return f"postgresql://{self.username}@{self.host}:{self.port}/{self.database}"


class TenancySettings(BaseSettings):
    """Tenant administration settings.

    Environment variables:
        AUTHP_TENANCY_TENANT_TYPE: Tenant type flags, e.g. "SingleLevel" or
            "Hierarchical|AddSharding" (default: SingleLevel)
        AUTHP_TENANCY_DEFAULT_CONNECTION_NAME: Connection used when a tenant
            does not name one (default: DefaultConnection)
        AUTHP_TENANCY_CONNECTIONS: JSON object mapping connection names to
            async database URLs
        AUTHP_TENANCY_ALLOW_MERGE_INTO_EXISTING_DATA: Allow moving a tenant
            into a store that already holds rows with its data key
            (default: false)
        AUTHP_TENANCY_CREATE_SCHEMA_ON_STARTUP: Create the identity tables on
            application startup (default: false)
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTHP_TENANCY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    tenant_type: TenantType = Field(
        default=TenantType.SINGLE_LEVEL,
        description="Tenant topology flags",
    )
    default_connection_name: str = Field(
        default="DefaultConnection",
        min_length=1,
        description="Name of the connection used by tenants without their own",
    )
    connections: dict[str, str] = Field(
        default_factory=dict,
        description="Connection name to async database URL",
    )
    allow_merge_into_existing_data: bool = Field(
        default=False,
        description="Allow a move into a store already holding the tenant's data key",
    )
    create_schema_on_startup: bool = Field(
        default=False,
        description="Create identity tables when the application starts",
    )

    @field_validator("tenant_type", mode="before")
    @classmethod
    def parse_tenant_type(cls, value: Any) -> Any:
        """Accept flag names ("SingleLevel|AddSharding") or integer values."""
        if isinstance(value, TenantType):
            return value
        if isinstance(value, int):
            return TenantType(value)
        if isinstance(value, str):
            return TenantType.parse(value)
        return value

    @model_validator(mode="after")
    def validate_tenant_type(self) -> "TenancySettings":
        """Exactly one of SingleLevel/Hierarchical must be selected."""
        if not self.tenant_type.is_valid_topology():
            raise ValueError(
                "tenant_type must include exactly one of SingleLevel or Hierarchical, "
                f"got {self.tenant_type!r}"
            )
        return self

    @property
    def is_sharding(self) -> bool:
        """Whether tenants may live in distinct stores."""
        return TenantType.ADD_SHARDING in self.tenant_type

    @property
    def is_hierarchical(self) -> bool:
        """Whether tenants form a hierarchy."""
        return TenantType.HIERARCHICAL in self.tenant_type


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="AuthP Tenant Admin", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def database(self) -> DatabaseSettings:
        """Get database settings."""
        return get_database_settings()

    @property
    def tenancy(self) -> TenancySettings:
        """Get tenancy settings."""
        return get_tenancy_settings()


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


@lru_cache
def get_database_settings() -> DatabaseSettings:
    """Get cached database settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return DatabaseSettings()


@lru_cache
def get_tenancy_settings() -> TenancySettings:
    """Get cached tenancy settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return TenancySettings()
