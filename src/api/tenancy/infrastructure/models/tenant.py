"""SQLAlchemy ORM model for the tenants table.

The tenants table lives in the identity database only. Tenant data rows
live in whichever store the tenant's connection name points at.
"""

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import DATA_KEY_LENGTH, Base, TimestampMixin


class TenantModel(Base, TimestampMixin):
    """ORM model for tenants table.

    ``version`` is SQLAlchemy's version counter: every UPDATE or DELETE is
    qualified with the version that was read, so a record changed by
    someone else in between raises ``StaleDataError``.

    Note: ``full_name`` is globally unique, which makes ``name`` unique
    within a parent.
    """

    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(String(26), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(
        String(2000), nullable=False, unique=True, index=True
    )
    parent_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("tenants.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    data_key: Mapped[str] = mapped_column(
        String(DATA_KEY_LENGTH), nullable=False, unique=True
    )
    is_hierarchical: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    has_own_db: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    connection_name: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<TenantModel(id={self.id}, full_name={self.full_name}, "
            f"data_key={self.data_key}, connection_name={self.connection_name})>"
        )
