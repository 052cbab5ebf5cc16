"""Fixtures for tenancy unit tests.

The tenant admin service is exercised against an in-memory tenant
repository and a recording change service, so these tests never touch a
database.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from infrastructure.settings import TenancySettings
from shared_kernel.status import Status
from tenancy.application.locking import TenantLockRegistry
from tenancy.application.observability import TenantAdminServiceProbe
from tenancy.application.services import TenantAdminService
from tenancy.domain.aggregates import Tenant
from tenancy.domain.exceptions import (
    TenantConcurrencyError,
    TenantNotFoundError,
    TenantValidationError,
)
from tenancy.domain.value_objects import TenantId, TenantType
from tenancy.ports.change_service import StagedMove

SHARDING_SINGLE = TenantType.SINGLE_LEVEL | TenantType.ADD_SHARDING
SHARDING_HIERARCHICAL = TenantType.HIERARCHICAL | TenantType.ADD_SHARDING


class InMemoryTenantRepository:
    """ITenantRepository keeping tenants in a dict, with version checks."""

    def __init__(self) -> None:
        self.tenants: dict[str, Tenant] = {}

    async def add(self, tenant: Tenant) -> Tenant:
        if await self.get_by_full_name(tenant.full_name):
            raise TenantValidationError(
                f"The tenant name '{tenant.full_name}' is already used"
            )
        if tenant.parent_id is not None and tenant.parent_id.value not in self.tenants:
            raise TenantNotFoundError(
                f"The parent of the tenant '{tenant.full_name}' no longer exists"
            )
        stored = replace(tenant, version=1, created_at=datetime.now(timezone.utc))
        self.tenants[tenant.id.value] = stored
        return stored

    async def update(self, tenant: Tenant) -> Tenant:
        current = self._current(tenant)
        existing = await self.get_by_full_name(tenant.full_name)
        if existing is not None and existing.id != tenant.id:
            raise TenantValidationError(
                f"The tenant name '{tenant.full_name}' is already used"
            )
        stored = replace(tenant, version=current.version + 1)
        self.tenants[tenant.id.value] = stored
        return stored

    async def get_by_id(self, tenant_id: TenantId) -> Tenant | None:
        return self.tenants.get(tenant_id.value)

    async def get_by_full_name(self, full_name: str) -> Tenant | None:
        for tenant in self.tenants.values():
            if tenant.full_name == full_name:
                return tenant
        return None

    async def list_all(self) -> list[Tenant]:
        return list(self.tenants.values())

    async def list_descendants(self, tenant: Tenant) -> list[Tenant]:
        descendants = [
            other for other in self.tenants.values() if other.is_descendant_of(tenant)
        ]
        return sorted(descendants, key=lambda other: len(other.data_key))

    async def list_by_connection(self, connection_name: str) -> list[Tenant]:
        return [
            tenant
            for tenant in self.tenants.values()
            if tenant.connection_name == connection_name
        ]

    async def delete(self, tenant: Tenant) -> bool:
        try:
            self._current(tenant)
        except TenantNotFoundError:
            return False
        del self.tenants[tenant.id.value]
        return True

    def _current(self, tenant: Tenant) -> Tenant:
        current = self.tenants.get(tenant.id.value)
        if current is None:
            raise TenantNotFoundError(f"Could not find the tenant '{tenant.full_name}'")
        if current.version != tenant.version:
            raise TenantConcurrencyError(
                f"The tenant '{tenant.full_name}' was changed by another request"
            )
        return current


class RecordingChangeService:
    """ITenantChangeService that records calls instead of touching stores.

    Set ``responses[<method name>]`` to make a method return that status.
    ``row_counts`` maps connection names to the rows the tenant has there.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple]] = []
        self.responses: dict[str, Status] = {}
        self.other_stores: list[str] = []
        self.row_counts: dict[str, int] = {}
        self.staged_rows = 2
        self.deleted_tenant_id: str | None = None
        self.moved_row_count = 0

    def called(self, name: str) -> list[tuple]:
        """Arguments of every call made to ``name``."""
        return [args for call_name, args in self.calls if call_name == name]

    async def create_tenant(self, tenant):
        self.calls.append(("create_tenant", (tenant,)))
        return self.responses.get("create_tenant", Status.ok())

    async def rename_tenant(self, tenant):
        self.calls.append(("rename_tenant", (tenant,)))
        return self.responses.get("rename_tenant", Status.ok())

    async def delete_tenant(self, tenant, descendants=None):
        self.calls.append(("delete_tenant", (tenant, descendants)))
        if "delete_tenant" in self.responses:
            return self.responses["delete_tenant"]
        self.deleted_tenant_id = tenant.id.value
        return Status.ok(0)

    async def stage_move(self, tenant, target_connection, has_own_db, descendants=None):
        self.calls.append(
            ("stage_move", (tenant, target_connection, has_own_db, descendants))
        )
        if "stage_move" in self.responses:
            return self.responses["stage_move"]
        return Status.ok(
            StagedMove(
                tenant=tenant,
                descendants=tuple(descendants or ()),
                source_connection=tenant.connection_name or "DefaultConnection",
                target_connection=target_connection,
                has_own_db=has_own_db,
                row_counts={"companies": self.staged_rows},
            )
        )

    async def complete_move(self, staged):
        self.calls.append(("complete_move", (staged,)))
        if "complete_move" in self.responses:
            return self.responses["complete_move"]
        self.moved_row_count = staged.total_rows
        return Status.ok(staged.total_rows, message="Moved")

    async def list_other_stores(self, connection_name):
        self.calls.append(("list_other_stores", (connection_name,)))
        if "list_other_stores" in self.responses:
            return self.responses["list_other_stores"]
        return Status.ok([name for name in self.other_stores if name != connection_name])

    async def count_tenant_rows(self, connection_name, data_key):
        self.calls.append(("count_tenant_rows", (connection_name, data_key)))
        return Status.ok(self.row_counts.get(connection_name, 0))

    async def delete_tenant_rows(self, connection_name, data_key):
        self.calls.append(("delete_tenant_rows", (connection_name, data_key)))
        if "delete_tenant_rows" in self.responses:
            return self.responses["delete_tenant_rows"]
        return Status.ok(self.row_counts.pop(connection_name, 0))


class RecordingChangeServiceFactory:
    """ITenantChangeServiceFactory handing out one recording change service."""

    def __init__(self, service: RecordingChangeService) -> None:
        self.service = service
        self.created = 0

    def create_change_service(self) -> RecordingChangeService:
        self.created += 1
        return self.service


@pytest.fixture
def tenant_repo() -> InMemoryTenantRepository:
    """In-memory tenant repository."""
    return InMemoryTenantRepository()


@pytest.fixture
def change_service() -> RecordingChangeService:
    """Recording change service."""
    return RecordingChangeService()


@pytest.fixture
def change_service_factory(change_service) -> RecordingChangeServiceFactory:
    """Stub factory returning the recording change service."""
    return RecordingChangeServiceFactory(change_service)


@pytest.fixture
def mock_probe():
    """Mock tenant admin service probe."""
    return Mock(spec=TenantAdminServiceProbe)


@pytest.fixture
def make_service(
    tenant_repo, mock_session, change_service_factory, mock_probe
):
    """Build a TenantAdminService for a tenant type.

    Extra keyword arguments become TenancySettings fields. Two extra
    connections are configured: "OtherConnection" and "SpareConnection".
    """

    def _make(
        tenant_type: TenantType = SHARDING_SINGLE,
        locks: TenantLockRegistry | None = None,
        **settings,
    ) -> TenantAdminService:
        settings.setdefault(
            "connections",
            {
                "OtherConnection": "sqlite+aiosqlite:///other.db",
                "SpareConnection": "sqlite+aiosqlite:///spare.db",
            },
        )
        return TenantAdminService(
            tenant_repository=tenant_repo,
            session=mock_session,
            settings=TenancySettings(tenant_type=tenant_type, **settings),
            change_service_factory=change_service_factory,
            probe=mock_probe,
            locks=locks,
        )

    return _make


@pytest.fixture
def add_tenants():
    """Add tenants by name through a service, failing the test on errors."""

    async def _add(service: TenantAdminService, *names: str, **options) -> list[Tenant]:
        tenants = []
        for name in names:
            status = await service.add_single_tenant(name, **options)
            assert status.is_valid, status.get_all_errors()
            tenants.append(status.result)
        return tenants

    return _add
