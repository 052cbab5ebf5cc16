"""SQLAlchemy implementation of ITenantRepository.

This repository manages the tenants table in the identity database. It
flushes but never commits; the tenant admin service owns the transaction.

Optimistic concurrency uses the model's version counter: the version the
caller read is compared before any write, and SQLAlchemy qualifies the
UPDATE/DELETE with it so a concurrent change between the check and the
flush is also caught.
"""

from __future__ import annotations

from sqlalchemy import ScalarResult, Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from tenancy.domain.aggregates import Tenant
from tenancy.domain.exceptions import (
    TenantConcurrencyError,
    TenantNotFoundError,
    TenantValidationError,
)
from tenancy.domain.value_objects import TenantId
from tenancy.infrastructure.models import TenantModel
from tenancy.infrastructure.observability import (
    DefaultTenantRepositoryProbe,
    TenantRepositoryProbe,
)
from tenancy.ports.repositories import ITenantRepository


class TenantRepository(ITenantRepository):
    """Repository managing identity storage for Tenant aggregates."""

    def __init__(
        self,
        session: AsyncSession,
        probe: TenantRepositoryProbe | None = None,
    ) -> None:
        """Initialize repository with database session.

        Args:
            session: AsyncSession for the identity database
            probe: Optional domain probe for observability
        """
        self._session = session
        self._probe = probe or DefaultTenantRepositoryProbe()

    async def add(self, tenant: Tenant) -> Tenant:
        """Insert a new tenant.

        Args:
            tenant: The unsaved Tenant aggregate

        Returns:
            The stored tenant (version and created_at populated)

        Raises:
            TenantValidationError: If the full name is already taken
            TenantNotFoundError: If the parent no longer exists
        """
        await self._ensure_full_name_available(tenant)
        if tenant.parent_id is not None and (
            await self._get_model(tenant.parent_id.value) is None
        ):
            raise TenantNotFoundError(
                f"The parent of the tenant '{tenant.full_name}' no longer exists"
            )

        model = TenantModel(
            id=tenant.id.value,
            name=tenant.name,
            full_name=tenant.full_name,
            parent_id=tenant.parent_id.value if tenant.parent_id else None,
            data_key=tenant.data_key,
            is_hierarchical=tenant.is_hierarchical,
            has_own_db=tenant.has_own_db,
            connection_name=tenant.connection_name,
        )
        self._session.add(model)

        try:
            await self._session.flush()
        except IntegrityError as e:
            self._probe.duplicate_tenant_name(tenant.full_name)
            raise TenantValidationError(
                f"The tenant name '{tenant.full_name}' is already used"
            ) from e

        self._probe.tenant_saved(tenant.id.value, model.version)
        return self._to_domain(model)

    async def update(self, tenant: Tenant) -> Tenant:
        """Persist name, full name and store changes of an existing tenant.

        Args:
            tenant: The modified Tenant aggregate carrying the version it was
                read with

        Returns:
            The stored tenant with its new version

        Raises:
            TenantNotFoundError: If the tenant no longer exists
            TenantConcurrencyError: If the stored version differs
            TenantValidationError: If the full name is already taken
        """
        model = await self._load_for_write(tenant)
        await self._ensure_full_name_available(tenant)

        model.name = tenant.name
        model.full_name = tenant.full_name
        model.has_own_db = tenant.has_own_db
        model.connection_name = tenant.connection_name

        try:
            await self._session.flush()
        except StaleDataError as e:
            self._probe.version_conflict(tenant.id.value, tenant.version, None)
            raise TenantConcurrencyError(
                f"The tenant '{tenant.full_name}' was changed by another request"
            ) from e
        except IntegrityError as e:
            self._probe.duplicate_tenant_name(tenant.full_name)
            raise TenantValidationError(
                f"The tenant name '{tenant.full_name}' is already used"
            ) from e

        self._probe.tenant_saved(tenant.id.value, model.version)
        return self._to_domain(model)

    async def get_by_id(self, tenant_id: TenantId) -> Tenant | None:
        """Fetch a tenant by id.

        Args:
            tenant_id: The unique identifier of the tenant

        Returns:
            The Tenant aggregate, or None if not found
        """
        model = await self._get_model(tenant_id.value)
        if model is None:
            return None

        self._probe.tenant_retrieved(tenant_id.value)
        return self._to_domain(model)

    async def get_by_full_name(self, full_name: str) -> Tenant | None:
        """Fetch a tenant by full name.

        Args:
            full_name: The tenant's full name

        Returns:
            The Tenant aggregate, or None if not found
        """
        stmt = select(TenantModel).where(TenantModel.full_name == full_name)
        model = (await self._scalars(stmt)).one_or_none()

        if model is None:
            return None

        self._probe.tenant_retrieved(model.id)
        return self._to_domain(model)

    async def list_all(self) -> list[Tenant]:
        """Fetch all tenants in creation order.

        Returns:
            List of all Tenant aggregates
        """
        stmt = select(TenantModel).order_by(TenantModel.created_at, TenantModel.id)
        tenants = [self._to_domain(model) for model in await self._scalars(stmt)]

        self._probe.tenants_listed(len(tenants))
        return tenants

    async def list_descendants(self, tenant: Tenant) -> list[Tenant]:
        """Fetch all descendants of a tenant, parents before children.

        Descendant data keys start with the ancestor's key, so a shorter key
        is always closer to the root.
        """
        stmt = (
            select(TenantModel)
            .where(
                TenantModel.data_key.startswith(tenant.data_key, autoescape=True),
                TenantModel.id != tenant.id.value,
            )
            .order_by(func.length(TenantModel.data_key), TenantModel.created_at)
        )
        return [self._to_domain(model) for model in await self._scalars(stmt)]

    async def list_by_connection(self, connection_name: str) -> list[Tenant]:
        """Fetch the tenants whose data lives on a connection."""
        stmt = (
            select(TenantModel)
            .where(TenantModel.connection_name == connection_name)
            .order_by(TenantModel.created_at, TenantModel.id)
        )
        return [self._to_domain(model) for model in await self._scalars(stmt)]

    async def delete(self, tenant: Tenant) -> bool:
        """Delete a tenant.

        Args:
            tenant: The Tenant aggregate to delete

        Returns:
            True if deleted, False if not found

        Raises:
            TenantConcurrencyError: If the stored version differs
        """
        try:
            model = await self._load_for_write(tenant)
        except TenantNotFoundError:
            return False

        await self._session.delete(model)
        try:
            await self._session.flush()
        except StaleDataError as e:
            self._probe.version_conflict(tenant.id.value, tenant.version, None)
            raise TenantConcurrencyError(
                f"The tenant '{tenant.full_name}' was changed by another request"
            ) from e

        self._probe.tenant_deleted(tenant.id.value)
        return True

    async def _scalars(self, stmt: Select) -> ScalarResult[TenantModel]:
        # Rows loaded earlier in this session may have changed since
        result = await self._session.execute(
            stmt.execution_options(populate_existing=True)
        )
        return result.scalars()

    async def _get_model(self, tenant_id: str) -> TenantModel | None:
        stmt = select(TenantModel).where(TenantModel.id == tenant_id)
        return (await self._scalars(stmt)).one_or_none()

    async def _load_for_write(self, tenant: Tenant) -> TenantModel:
        """Load the current row and check it still has the version read."""
        model = await self._get_model(tenant.id.value)
        if model is None:
            raise TenantNotFoundError(f"Could not find the tenant '{tenant.full_name}'")
        if model.version != tenant.version:
            self._probe.version_conflict(tenant.id.value, tenant.version, model.version)
            raise TenantConcurrencyError(
                f"The tenant '{tenant.full_name}' was changed by another request"
            )
        return model

    async def _ensure_full_name_available(self, tenant: Tenant) -> None:
        existing = await self.get_by_full_name(tenant.full_name)
        if existing is not None and existing.id != tenant.id:
            self._probe.duplicate_tenant_name(tenant.full_name)
            raise TenantValidationError(
                f"The tenant name '{tenant.full_name}' is already used"
            )

    @staticmethod
    def _to_domain(model: TenantModel) -> Tenant:
        """Reconstitute a Tenant aggregate from its row."""
        return Tenant(
            id=TenantId(value=model.id),
            name=model.name,
            data_key=model.data_key,
            full_name=model.full_name,
            parent_id=TenantId(value=model.parent_id) if model.parent_id else None,
            is_hierarchical=model.is_hierarchical,
            has_own_db=model.has_own_db,
            connection_name=model.connection_name,
            version=model.version,
            created_at=model.created_at,
        )
