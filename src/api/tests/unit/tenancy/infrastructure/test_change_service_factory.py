"""Unit tests for TenantChangeServiceFactory."""

from unittest.mock import Mock

import pytest

from infrastructure.database.connection_resolver import ConnectionResolver
from infrastructure.settings import TenancySettings
from tenancy.domain.exceptions import TenancyConfigurationError
from tenancy.domain.value_objects import TenantType
from tenancy.infrastructure.change_services import (
    HierarchicalTenantChangeService,
    ShardingHierarchicalTenantChangeService,
    ShardingSingleLevelTenantChangeService,
    SingleLevelTenantChangeService,
    TenantChangeServiceFactory,
)
from tenancy.ports.change_service import ITenantChangeService


@pytest.fixture
def mock_resolver():
    """Mock connection resolver."""
    return Mock(spec=ConnectionResolver)


class TestTenantChangeServiceFactory:
    """Tests for change service selection."""

    @pytest.mark.parametrize(
        "tenant_type,expected",
        [
            (TenantType.SINGLE_LEVEL, SingleLevelTenantChangeService),
            (
                TenantType.SINGLE_LEVEL | TenantType.ADD_SHARDING,
                ShardingSingleLevelTenantChangeService,
            ),
            (TenantType.HIERARCHICAL, HierarchicalTenantChangeService),
            (
                TenantType.HIERARCHICAL | TenantType.ADD_SHARDING,
                ShardingHierarchicalTenantChangeService,
            ),
        ],
    )
    def test_selects_service_for_tenant_type(
        self, mock_resolver, tenant_type, expected
    ):
        """Each tenant type gets its own change service."""
        factory = TenantChangeServiceFactory(
            mock_resolver, TenancySettings(tenant_type=tenant_type)
        )

        service = factory.create_change_service()

        assert type(service) is expected
        assert isinstance(service, ITenantChangeService)
        assert factory.tenant_type == tenant_type

    def test_creates_fresh_instance_per_call(self, mock_resolver):
        """Operation metadata never leaks between requests."""
        factory = TenantChangeServiceFactory(mock_resolver, TenancySettings())

        assert factory.create_change_service() is not factory.create_change_service()

    def test_only_sharding_services_support_moves(self, mock_resolver):
        """Moves are only possible with sharding."""
        sharded = TenantChangeServiceFactory(
            mock_resolver,
            TenancySettings(tenant_type="SingleLevel|AddSharding"),
        ).create_change_service()
        shared = TenantChangeServiceFactory(
            mock_resolver, TenancySettings()
        ).create_change_service()

        assert sharded.supports_moves is True
        assert shared.supports_moves is False

    def test_new_service_has_no_operation_metadata(self, mock_resolver):
        """A new service has not deleted or moved anything."""
        service = TenantChangeServiceFactory(
            mock_resolver, TenancySettings()
        ).create_change_service()

        assert service.deleted_tenant_id is None
        assert service.moved_row_count == 0

    def test_unsupported_tenant_type(self, mock_resolver):
        """A tenant type without a change service is a configuration error."""
        settings = TenancySettings.model_construct(
            tenant_type=TenantType.NOT_USING_TENANTS
        )
        factory = TenantChangeServiceFactory(mock_resolver, settings)

        with pytest.raises(TenancyConfigurationError):
            factory.create_change_service()
