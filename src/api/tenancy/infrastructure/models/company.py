"""Example tenant-scoped entity.

Companies stand in for the application data a host stores per tenant. Any
model declared on ``ScopedBase`` with ``TenantScopedMixin`` is handled the
same way by the tenant change services.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column
from ulid import ULID

from infrastructure.database.models import ScopedBase, TenantScopedMixin


def _new_id() -> str:
    return str(ULID())


class CompanyModel(ScopedBase, TenantScopedMixin):
    """ORM model for the companies table in a tenant data store."""

    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=_new_id)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<CompanyModel(id={self.id}, company_name={self.company_name})>"
