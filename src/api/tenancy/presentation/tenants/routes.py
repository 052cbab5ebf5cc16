"""HTTP routes for tenant administration."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from shared_kernel.status import ErrorCode, Status
from tenancy.application.services import TenantAdminService
from tenancy.dependencies.tenant_admin import get_tenant_admin_service
from tenancy.presentation.tenants.models import (
    CreateTenantRequest,
    MoveTenantRequest,
    MoveTenantResponse,
    RedundantCopyResponse,
    RenameTenantRequest,
    TenantResponse,
)

router = APIRouter(
    prefix="/tenants",
    tags=["tenants"],
)

_HTTP_STATUS_BY_CODE = {
    ErrorCode.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.CONCURRENCY: status.HTTP_409_CONFLICT,
    ErrorCode.CONFIGURATION: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.STORE_OPERATION: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_ERROR_RESPONSES: dict[int | str, dict] = {
    400: {"description": "Invalid request"},
    404: {"description": "Tenant not found"},
    409: {"description": "Tenant changed by another request"},
    500: {"description": "Configuration or data store failure"},
}


def raise_for_status(result: Status) -> None:
    """Raise the HTTPException matching a failed status.

    Raises:
        HTTPException: Status code chosen from the first error's code
    """
    if result.is_valid:
        return
    code = result.first_error_code or ErrorCode.STORE_OPERATION
    raise HTTPException(
        status_code=_HTTP_STATUS_BY_CODE[code],
        detail=result.get_all_errors("; "),
    )


@router.get("", responses=_ERROR_RESPONSES)
async def list_tenants(
    service: Annotated[TenantAdminService, Depends(get_tenant_admin_service)],
) -> list[TenantResponse]:
    """List all tenants in creation order."""
    result = await service.list_tenants()
    raise_for_status(result)
    return [TenantResponse.from_domain(tenant) for tenant in result.result or []]


@router.get("/{tenant_id}", responses=_ERROR_RESPONSES)
async def get_tenant(
    tenant_id: str,
    service: Annotated[TenantAdminService, Depends(get_tenant_admin_service)],
) -> TenantResponse:
    """Get tenant by ID.

    Raises:
        HTTPException: 400 if tenant ID is invalid
        HTTPException: 404 if tenant not found
    """
    result = await service.get_tenant(tenant_id)
    raise_for_status(result)
    return TenantResponse.from_domain(result.result)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    responses=_ERROR_RESPONSES,
)
async def create_tenant(
    request: CreateTenantRequest,
    service: Annotated[TenantAdminService, Depends(get_tenant_admin_service)],
) -> TenantResponse:
    """Add a new tenant.

    Args:
        request: Tenant name plus optional parent and store placement
        service: Tenant admin service

    Returns:
        TenantResponse with the stored tenant

    Raises:
        HTTPException: 400 for an invalid or duplicate name or placement
        HTTPException: 404 if the parent tenant does not exist
        HTTPException: 500 for an unknown connection or store failure
    """
    result = await service.add_single_tenant(
        name=request.name,
        parent_id=request.parent_id,
        has_own_db=request.has_own_db,
        connection_name=request.connection_name,
    )
    raise_for_status(result)
    return TenantResponse.from_domain(result.result)


@router.patch("/{tenant_id}", responses=_ERROR_RESPONSES)
async def rename_tenant(
    tenant_id: str,
    request: RenameTenantRequest,
    service: Annotated[TenantAdminService, Depends(get_tenant_admin_service)],
) -> TenantResponse:
    """Rename a tenant.

    Raises:
        HTTPException: 400 for an invalid or duplicate name
        HTTPException: 404 if tenant not found
        HTTPException: 409 if the tenant changed concurrently
    """
    result = await service.update_tenant_name(tenant_id, request.name)
    raise_for_status(result)
    return TenantResponse.from_domain(result.result)


@router.delete(
    "/{tenant_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_model=None,
    responses={
        204: {"description": "Tenant deleted successfully"},
        **_ERROR_RESPONSES,
    },
)
async def delete_tenant(
    tenant_id: str,
    service: Annotated[TenantAdminService, Depends(get_tenant_admin_service)],
) -> None:
    """Delete a tenant with its data (and descendants for hierarchical tenants).

    Returns:
        None (204 No Content on success)
    """
    result = await service.delete_tenant(tenant_id)
    raise_for_status(result)


@router.post("/{tenant_id}/move-database", responses=_ERROR_RESPONSES)
async def move_tenant_database(
    tenant_id: str,
    request: MoveTenantRequest,
    service: Annotated[TenantAdminService, Depends(get_tenant_admin_service)],
) -> MoveTenantResponse:
    """Move a tenant's data to the database behind another connection.

    Raises:
        HTTPException: 400 if sharding is off or the move is not allowed
        HTTPException: 404 if tenant not found
        HTTPException: 500 for an unknown connection or store failure
    """
    result = await service.move_to_different_database(
        tenant_id,
        create_new_db=request.create_new_db,
        new_connection_name=request.connection_name,
    )
    raise_for_status(result)
    return MoveTenantResponse(
        tenant_id=tenant_id,
        connection_name=request.connection_name,
        has_own_db=request.create_new_db,
        moved_row_count=result.result.moved_row_count,
        message=result.message,
    )


@router.get("/{tenant_id}/redundant-copies", responses=_ERROR_RESPONSES)
async def find_redundant_copies(
    tenant_id: str,
    service: Annotated[TenantAdminService, Depends(get_tenant_admin_service)],
) -> list[RedundantCopyResponse]:
    """List stores other than the tenant's own that still hold its rows."""
    result = await service.find_redundant_copies(tenant_id)
    raise_for_status(result)
    return [RedundantCopyResponse.from_value(copy) for copy in result.result or []]


@router.delete("/{tenant_id}/redundant-copies", responses=_ERROR_RESPONSES)
async def remove_redundant_copies(
    tenant_id: str,
    service: Annotated[TenantAdminService, Depends(get_tenant_admin_service)],
) -> list[RedundantCopyResponse]:
    """Remove the tenant's rows from stores other than its own.

    Returns:
        The copies that were removed
    """
    result = await service.remove_redundant_copies(tenant_id)
    raise_for_status(result)
    return [RedundantCopyResponse.from_value(copy) for copy in result.result or []]
