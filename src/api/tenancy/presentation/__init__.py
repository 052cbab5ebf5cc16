"""Tenancy presentation layer - aggregate-based organization.

Each aggregate package contains its own routes and models.
"""

from __future__ import annotations

from fastapi import APIRouter

from tenancy.presentation import tenants

# Create main tenancy router with common configuration.
# Authentication is left to the host application mounting this router.
router = APIRouter(
    prefix="/tenancy",
    tags=["tenancy"],
)

router.include_router(tenants.router)

__all__ = ["router"]
