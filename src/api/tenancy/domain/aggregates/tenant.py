"""Tenant aggregate for the tenancy context."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime

from tenancy.domain.exceptions import TenantValidationError
from tenancy.domain.value_objects import (
    FULL_NAME_SEPARATOR,
    TenantId,
    build_data_key,
    build_full_name,
    path_from_data_key,
)

MAX_TENANT_NAME_LENGTH = 200


@dataclass
class Tenant:
    """Tenant aggregate representing an isolated customer/organization.

    A tenant's rows in any data store are stamped with its ``data_key``.
    Hierarchical tenants build their key from their parent's key, so a
    parent's key prefixes every descendant's key and the tenant path can be
    read back from the key.

    Business rules:
    - The data key is assigned at creation and never changes
    - Full names are unique, so a name is unique within its parent scope
    - Hierarchical children live in the same store as their parent
    - ``connection_name`` is only set when sharding is in use
    """

    id: TenantId
    name: str
    data_key: str
    full_name: str = ""
    parent_id: TenantId | None = None
    is_hierarchical: bool = False
    has_own_db: bool = False
    connection_name: str | None = None
    version: int = 0
    created_at: datetime | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not self.full_name:
            self.full_name = self.name

    @classmethod
    def create_single_level(
        cls,
        name: str,
        connection_name: str | None = None,
        has_own_db: bool = False,
    ) -> Tenant:
        """Factory method for a new single-level tenant.

        Args:
            name: The tenant name
            connection_name: Store connection when sharding, else None
            has_own_db: Whether the tenant owns its store exclusively

        Returns:
            A new, unsaved Tenant

        Raises:
            TenantValidationError: If the name is invalid
        """
        name = cls.validate_name(name)
        tenant_id = TenantId.generate()
        return cls(
            id=tenant_id,
            name=name,
            data_key=build_data_key(tenant_id),
            connection_name=connection_name,
            has_own_db=has_own_db,
        )

    @classmethod
    def create_hierarchical(
        cls,
        name: str,
        parent: Tenant | None = None,
        connection_name: str | None = None,
        has_own_db: bool = False,
    ) -> Tenant:
        """Factory method for a new hierarchical tenant.

        A child inherits its parent's store; ``connection_name`` and
        ``has_own_db`` only apply to top-level tenants.

        Args:
            name: This level's name
            parent: The parent tenant, or None for a top-level tenant
            connection_name: Store connection when sharding, else None
            has_own_db: Whether the tenant owns its store exclusively

        Returns:
            A new, unsaved Tenant

        Raises:
            TenantValidationError: If the name is invalid or the parent
                is not hierarchical
        """
        name = cls.validate_name(name)
        tenant_id = TenantId.generate()

        if parent is None:
            return cls(
                id=tenant_id,
                name=name,
                data_key=build_data_key(tenant_id),
                is_hierarchical=True,
                connection_name=connection_name,
                has_own_db=has_own_db,
            )

        if not parent.is_hierarchical:
            raise TenantValidationError(
                f"The parent tenant '{parent.full_name}' is not a hierarchical tenant"
            )

        return cls(
            id=tenant_id,
            name=name,
            data_key=build_data_key(tenant_id, parent.data_key),
            full_name=build_full_name(name, parent.full_name),
            parent_id=parent.id,
            is_hierarchical=True,
            connection_name=parent.connection_name,
            has_own_db=parent.has_own_db,
        )

    @staticmethod
    def validate_name(name: str) -> str:
        """Return the trimmed name or raise TenantValidationError."""
        trimmed = (name or "").strip()
        if not trimmed:
            raise TenantValidationError("The tenant name must not be empty")
        if len(trimmed) > MAX_TENANT_NAME_LENGTH:
            raise TenantValidationError(
                f"The tenant name must be at most {MAX_TENANT_NAME_LENGTH} characters"
            )
        if FULL_NAME_SEPARATOR.strip() in trimmed:
            raise TenantValidationError(
                f"The tenant name must not contain '{FULL_NAME_SEPARATOR.strip()}'"
            )
        return trimmed

    @property
    def path(self) -> tuple[str, ...]:
        """Ancestor tenant ids, root first (empty for top-level tenants)."""
        return path_from_data_key(self.data_key)[:-1]

    @property
    def root_id(self) -> str:
        """Id of the top-level tenant of this tenant's subtree."""
        return self.path[0] if self.path else self.id.value

    @property
    def is_top_level(self) -> bool:
        """True for single-level tenants and hierarchical roots."""
        return self.parent_id is None

    @property
    def parent_full_name(self) -> str | None:
        """Full name of the parent, derived from this tenant's full name."""
        if self.parent_id is None:
            return None
        return self.full_name[: -(len(self.name) + len(FULL_NAME_SEPARATOR))]

    def is_descendant_of(self, other: Tenant) -> bool:
        """True if ``other`` is a strict ancestor of this tenant."""
        return self.data_key != other.data_key and self.data_key.startswith(
            other.data_key
        )

    def rename(self, new_name: str) -> Tenant:
        """Return a copy with the new name (and recomputed full name).

        Raises:
            TenantValidationError: If the new name is invalid or unchanged
        """
        new_name = self.validate_name(new_name)
        if new_name == self.name:
            raise TenantValidationError(
                f"The tenant is already named '{new_name}'"
            )
        return replace(
            self,
            name=new_name,
            full_name=build_full_name(new_name, self.parent_full_name),
        )

    def rebase_full_name(self, old_prefix: str, new_prefix: str) -> Tenant:
        """Return a copy whose full name starts with ``new_prefix``.

        Used to keep descendants' full names in step with a renamed ancestor.
        """
        if not self.full_name.startswith(old_prefix):
            return self
        return replace(self, full_name=new_prefix + self.full_name[len(old_prefix) :])

    def relocate(self, connection_name: str, has_own_db: bool) -> Tenant:
        """Return a copy pointing at another store."""
        return replace(self, connection_name=connection_name, has_own_db=has_own_db)
