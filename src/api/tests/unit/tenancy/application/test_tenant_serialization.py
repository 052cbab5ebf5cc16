"""Unit tests for how TenantAdminService serializes overlapping operations."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from shared_kernel.status import ErrorCode, Status
from tenancy.application.locking import TenantLockRegistry
from tenancy.domain.aggregates import Tenant
from tenancy.domain.value_objects import TenantType

SHARDING_HIERARCHICAL = TenantType.HIERARCHICAL | TenantType.ADD_SHARDING


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def gate():
    """A started/release pair of events for pausing a change service call."""
    return asyncio.Event(), asyncio.Event()


@pytest.fixture
def gated_stage_move(change_service, gate):
    """Pause stage_move until the test releases it."""
    started, release = gate
    stage_move = change_service.stage_move

    async def _stage(*args):
        started.set()
        await release.wait()
        return await stage_move(*args)

    change_service.stage_move = _stage
    return gate


class TestSubtreeLocking:
    """Operations on a tenant and its descendants never interleave."""

    @pytest.mark.asyncio
    async def test_child_rename_waits_for_parent_move(
        self, make_service, tenant_repo, add_tenants, gated_stage_move
    ):
        """A child renamed mid-move is renamed after the subtree has moved."""
        locks = TenantLockRegistry()
        mover = make_service(SHARDING_HIERARCHICAL, locks=locks)
        renamer = make_service(SHARDING_HIERARCHICAL, locks=locks)
        (company,) = await add_tenants(mover, "Company")
        (west,) = await add_tenants(mover, "West", parent_id=company.id)
        started, release = gated_stage_move

        move = asyncio.create_task(
            mover.move_to_different_database(company.id, False, "OtherConnection")
        )
        await started.wait()
        rename = asyncio.create_task(renamer.update_tenant_name(west.id, "East"))
        await _settle()

        assert not rename.done()

        release.set()
        moved, renamed = await asyncio.gather(move, rename)

        assert moved.is_valid, moved.get_all_errors()
        assert renamed.is_valid, renamed.get_all_errors()
        stored_company = tenant_repo.tenants[company.id.value]
        stored_west = tenant_repo.tenants[west.id.value]
        assert stored_company.connection_name == "OtherConnection"
        assert stored_west.connection_name == "OtherConnection"
        assert stored_west.full_name == "Company | East"

    @pytest.mark.asyncio
    async def test_child_delete_waits_for_parent_move(
        self, make_service, tenant_repo, change_service, add_tenants, gated_stage_move
    ):
        """A child deleted mid-move is deleted from the store it moved to."""
        locks = TenantLockRegistry()
        mover = make_service(SHARDING_HIERARCHICAL, locks=locks)
        deleter = make_service(SHARDING_HIERARCHICAL, locks=locks)
        (company,) = await add_tenants(mover, "Company")
        (west,) = await add_tenants(mover, "West", parent_id=company.id)
        started, release = gated_stage_move

        move = asyncio.create_task(
            mover.move_to_different_database(company.id, False, "OtherConnection")
        )
        await started.wait()
        delete = asyncio.create_task(deleter.delete_tenant(west.id))
        await _settle()

        assert not delete.done()

        release.set()
        moved, deleted = await asyncio.gather(move, delete)

        assert moved.is_valid, moved.get_all_errors()
        assert deleted.is_valid, deleted.get_all_errors()
        ((deleted_tenant, _),) = change_service.called("delete_tenant")
        assert deleted_tenant.connection_name == "OtherConnection"
        assert list(tenant_repo.tenants) == [company.id.value]

    @pytest.mark.asyncio
    async def test_parent_delete_waits_for_child_add(
        self, make_service, tenant_repo, change_service, add_tenants, gate
    ):
        """A parent deleted while a child is being added takes the child too."""
        locks = TenantLockRegistry()
        adder = make_service(TenantType.HIERARCHICAL, locks=locks)
        deleter = make_service(TenantType.HIERARCHICAL, locks=locks)
        (company,) = await add_tenants(adder, "Company")
        started, release = gate

        async def gated_create(tenant):
            started.set()
            await release.wait()
            return Status.ok()

        change_service.create_tenant = gated_create

        add = asyncio.create_task(
            adder.add_single_tenant("West", parent_id=company.id)
        )
        await started.wait()
        delete = asyncio.create_task(deleter.delete_tenant(company.id))
        await _settle()

        assert not delete.done()

        release.set()
        added, deleted = await asyncio.gather(add, delete)

        assert added.is_valid, added.get_all_errors()
        assert deleted.is_valid, deleted.get_all_errors()
        ((_, descendants),) = change_service.called("delete_tenant")
        assert [child.id for child in descendants] == [added.result.id]
        assert tenant_repo.tenants == {}

    @pytest.mark.asyncio
    async def test_child_not_added_when_parent_vanishes(
        self, make_service, tenant_repo, change_service, add_tenants
    ):
        """A parent removed outside this process is noticed before the commit."""
        service = make_service(TenantType.HIERARCHICAL)
        (company,) = await add_tenants(service, "Company")

        async def parent_removed_elsewhere(tenant):
            del tenant_repo.tenants[company.id.value]
            return Status.ok()

        change_service.create_tenant = parent_removed_elsewhere

        status = await service.add_single_tenant("West", parent_id=company.id)

        assert status.first_error_code == ErrorCode.NOT_FOUND
        assert tenant_repo.tenants == {}

    @pytest.mark.asyncio
    async def test_action_not_started_while_waiting_for_lock(
        self, make_service, add_tenants, monkeypatch
    ):
        """Cancelling a caller still waiting for the lock runs nothing."""
        locks = TenantLockRegistry()
        service = make_service(locks=locks)
        (tenant,) = await add_tenants(service, "Tenant1")
        rename = AsyncMock(return_value=Status.ok())
        monkeypatch.setattr(service, "_update_tenant_name", rename)

        async with locks.hold(f"tenant:{tenant.root_id}"):
            task = asyncio.create_task(service.update_tenant_name(tenant.id, "New"))
            await _settle()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        rename.assert_not_called()
        assert len(locks) == 0


class TestConnectionLocking:
    """Adds and moves targeting one store connection are serialized."""

    @pytest.mark.asyncio
    async def test_only_one_tenant_can_claim_a_store(
        self, make_service, tenant_repo, change_service, gate
    ):
        """Two concurrent own-database adds on one connection: one wins."""
        service = make_service()
        started, release = gate

        async def gated_create(tenant):
            started.set()
            await release.wait()
            return Status.ok()

        change_service.create_tenant = gated_create

        first = asyncio.create_task(
            service.add_single_tenant(
                "A", has_own_db=True, connection_name="OtherConnection"
            )
        )
        await started.wait()
        second = asyncio.create_task(
            service.add_single_tenant(
                "B", has_own_db=True, connection_name="OtherConnection"
            )
        )
        await _settle()
        release.set()
        added_a, added_b = await asyncio.gather(first, second)

        assert added_a.is_valid, added_a.get_all_errors()
        assert added_b.first_error_code == ErrorCode.VALIDATION
        owners = await tenant_repo.list_by_connection("OtherConnection")
        assert [owner.name for owner in owners] == ["A"]

    @pytest.mark.asyncio
    async def test_other_connections_are_not_blocked(
        self, make_service, change_service, gate
    ):
        """An add on one connection does not wait for an add on another."""
        service = make_service()
        started, release = gate
        create_tenant = change_service.create_tenant

        async def gated_create(tenant):
            if tenant.name == "A":
                started.set()
                await release.wait()
            return await create_tenant(tenant)

        change_service.create_tenant = gated_create

        first = asyncio.create_task(
            service.add_single_tenant(
                "A", has_own_db=True, connection_name="OtherConnection"
            )
        )
        await started.wait()

        added_b = await service.add_single_tenant(
            "B", has_own_db=True, connection_name="SpareConnection"
        )

        assert added_b.is_valid, added_b.get_all_errors()
        assert not first.done()
        release.set()
        assert (await first).is_valid

    @pytest.mark.asyncio
    async def test_store_claimed_elsewhere_is_noticed_before_commit(
        self, make_service, tenant_repo, change_service
    ):
        """An owner recorded by another process is seen by the final check."""
        service = make_service()

        async def claimed_elsewhere(tenant):
            await tenant_repo.add(
                Tenant.create_single_level(
                    "Elsewhere", connection_name="OtherConnection", has_own_db=True
                )
            )
            return Status.ok()

        change_service.create_tenant = claimed_elsewhere

        status = await service.add_single_tenant(
            "A", has_own_db=True, connection_name="OtherConnection"
        )

        assert status.first_error_code == ErrorCode.VALIDATION
        owners = await tenant_repo.list_by_connection("OtherConnection")
        assert [owner.name for owner in owners] == ["Elsewhere"]
