# backend/erpguard/api/dependencies.py
from fastapi import Depends, HTTPException, status

from erpguard.core.constants import ACTION_TO_RESOURCE, ActionType, QuotaReason, TenantRole
from erpguard.core.tenant import TenantState, resolve_tenant
from erpguard.services import row_store
from erpguard.services.permission_service import OverrideFetcher, PermissionContext
from erpguard.services.quota_service import QuotaGuard, QuotaGuardPool, quota_exceeded_message

_quota_pool = None


def get_override_fetcher() -> OverrideFetcher:
    return row_store.fetch_overrides


def get_override_writer():
    return row_store.write_overrides


def get_quota_pool() -> QuotaGuardPool:
    """Shared pool so cached usage and plan outlive a single request"""
    global _quota_pool
    if _quota_pool is None:
        _quota_pool = QuotaGuardPool(row_store.fetch_usage, row_store.fetch_plan)
    return _quota_pool


async def get_permission_context(
    tenant: TenantState = Depends(resolve_tenant),
    fetch_overrides: OverrideFetcher = Depends(get_override_fetcher),
) -> PermissionContext:
    """Resolved permission matrix for the calling tenant"""
    context = PermissionContext(fetch_overrides)
    await context.on_tenant_changed(tenant)
    return context


async def get_quota_guard(
    tenant: TenantState = Depends(resolve_tenant),
    pool: QuotaGuardPool = Depends(get_quota_pool),
) -> QuotaGuard:
    guard = pool.get(tenant.company_id)
    await guard.refresh()
    return guard


def require_role(*allowed_roles: TenantRole):
    """Dependency to check the tenant role"""
    async def role_checker(tenant: TenantState = Depends(resolve_tenant)) -> TenantState:
        if tenant.role is None:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="No tenant role"
            )

        if tenant.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires one of: {', '.join(r.value for r in allowed_roles)}"
            )

        return tenant

    return role_checker


def require_company_access(company_id: str, tenant: TenantState) -> None:
    """Admins manage their own company only; superadmins manage every company"""
    if tenant.role == TenantRole.SUPERADMIN:
        return
    if tenant.role == TenantRole.ADMIN and tenant.company_id == company_id:
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Not allowed to manage this company"
    )


def enforce_quota(action: ActionType):
    """
    Dependency for create endpoints: reject the request once the plan limit is hit.

    This service exposes no create endpoints itself; the CRUD routes for
    invoices, customers, products, deals, quotes and users mount it, e.g.
    `dependencies=[Depends(enforce_quota(ActionType.ADD_CUSTOMER))]`, and call
    `guard.invalidate_usage()` after a successful insert.
    """
    async def quota_checker(guard: QuotaGuard = Depends(get_quota_guard)) -> QuotaGuard:
        result = guard.can_perform_action(action)

        if not result.allowed:
            detail = result.model_dump(mode="json", exclude_none=True)
            if result.reason == QuotaReason.QUOTA_EXCEEDED:
                detail["upgrade_message"] = quota_exceeded_message(
                    ACTION_TO_RESOURCE[action], result.limit
                )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=detail,
            )

        return guard

    return quota_checker
