"""SQLAlchemy declarative bases and shared model utilities.

Two metadata collections are kept apart:

- ``Base`` holds the identity tables (the tenants table) that live in the
  identity database only.
- ``ScopedBase`` holds tenant-scoped tables. Every scoped table carries a
  ``data_key`` column and the same schema is provisioned in each store a
  tenant's data can live in.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

DATA_KEY_LENGTH = 255


def _utc_now() -> datetime:
    """Generate UTC timestamp for database defaults.

    Uses a named function instead of lambda for SQLAlchemy 2.0 compatibility.
    Ensures proper INSERT-time evaluation.
    """
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for identity database ORM models."""

    type_annotation_map: dict[type, Any] = {}


class ScopedBase(DeclarativeBase):
    """Base class for tenant-scoped ORM models.

    Tables declared here are created in every tenant data store and are the
    tables the tenant change services copy and delete by data key.
    """

    type_annotation_map: dict[type, Any] = {}


class TimestampMixin:
    """Mixin providing created_at and updated_at timestamp columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        insert_default=_utc_now,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        insert_default=_utc_now,
        onupdate=_utc_now,
        nullable=False,
    )


class TenantScopedMixin:
    """Mixin stamping a row with the data key of the tenant that owns it.

    Sessions opened for a tenant only see rows whose ``data_key`` matches
    (or, for hierarchical tenants, starts with) the tenant's key.
    """

    data_key: Mapped[str] = mapped_column(
        String(DATA_KEY_LENGTH),
        nullable=False,
        index=True,
    )
