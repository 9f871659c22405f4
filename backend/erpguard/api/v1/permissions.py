# backend/erpguard/api/v1/permissions.py
from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from erpguard.api.dependencies import (
    get_override_fetcher,
    get_override_writer,
    get_permission_context,
    require_company_access,
    require_role,
)
from erpguard.core.constants import TenantRole, module_for_path, parse_module
from erpguard.core.rbac import build_company_matrix, flatten_company_matrix, merge_company_matrix
from erpguard.core.tenant import TenantState
from erpguard.schemas.permission import (
    CompanyPermissionsResponse,
    CompanyPermissionsUpdate,
    CompanyPermissionsWriteResult,
    PermissionCheckResponse,
    PermissionKind,
    PermissionsResponse,
    RouteCheckResponse,
)
from erpguard.services.permission_service import PermissionContext

logger = logging.getLogger(__name__)

router = APIRouter()

manage_permissions = require_role(TenantRole.SUPERADMIN, TenantRole.ADMIN)


@router.get("/me", response_model=PermissionsResponse)
async def get_my_permissions(
    context: PermissionContext = Depends(get_permission_context),
):
    """Effective module matrix for the calling tenant"""
    return PermissionsResponse(
        company_id=context.tenant.company_id,
        role=context.tenant.role,
        loading=context.loading,
        permissions=context.permissions,
    )


@router.get("/check", response_model=PermissionCheckResponse)
async def check_permission(
    module: str = Query(...),
    kind: PermissionKind = Query("view"),
    context: PermissionContext = Depends(get_permission_context),
):
    module_key = parse_module(module)
    if module_key is None:
        raise HTTPException(status_code=400, detail=f"Unknown module: {module}")

    return PermissionCheckResponse(
        module=module_key,
        kind=kind,
        allowed=context.has_permission(module_key, kind),
    )


@router.get("/route", response_model=RouteCheckResponse)
async def check_route(
    path: str = Query(...),
    context: PermissionContext = Depends(get_permission_context),
):
    """Which module guards a front-end path, and whether the caller may open it"""
    return RouteCheckResponse(
        path=path,
        module=module_for_path(path),
        allowed=context.can_access_path(path),
    )


@router.get("/companies/{company_id}", response_model=CompanyPermissionsResponse)
async def get_company_permissions(
    company_id: str,
    tenant: TenantState = Depends(manage_permissions),
    fetch_overrides=Depends(get_override_fetcher),
):
    """Both-role matrix for the permission editor"""
    require_company_access(company_id, tenant)

    rows = await fetch_overrides(company_id, None)
    return CompanyPermissionsResponse(
        company_id=company_id,
        permissions=build_company_matrix(rows),
    )


@router.put("/companies/{company_id}", response_model=CompanyPermissionsWriteResult)
async def update_company_permissions(
    company_id: str,
    payload: CompanyPermissionsUpdate,
    tenant: TenantState = Depends(manage_permissions),
    write_overrides=Depends(get_override_writer),
):
    """
    Save the editor matrix.

    Every (role, module) row is written, changed or not, replacing the
    company's previous rows. Concurrent saves: last write wins.
    """
    require_company_access(company_id, tenant)

    matrix = merge_company_matrix(payload.permissions)
    rows = flatten_company_matrix(matrix)
    written = await write_overrides(company_id, rows)

    logger.info(
        "Company permissions updated",
        extra={"company_id": company_id, "role": tenant.role.value},
    )

    return CompanyPermissionsWriteResult(
        company_id=company_id,
        rows_written=written,
        permissions=matrix,
        rows=rows,
    )
