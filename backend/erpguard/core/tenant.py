"""Tenant resolution input for the permission and quota services."""
from typing import NamedTuple, Optional
from fastapi import Header, HTTPException

from erpguard.core.constants import TenantRole, parse_role


class TenantState(NamedTuple):
    """
    Result of the upstream tenant-membership lookup.

    company_id is None for users not attached to a company yet, role is
    None when there is no membership. While loading is True neither value
    should be trusted.
    """

    company_id: Optional[str] = None
    role: Optional[TenantRole] = None
    loading: bool = False


UNRESOLVED_TENANT = TenantState(loading=True)


async def resolve_tenant(
    x_company_id: Optional[str] = Header(None),
    x_tenant_role: Optional[str] = Header(None),
) -> TenantState:
    """
    FastAPI dependency that reads the tenant context from request headers.

    The headers are trusted as-is: the service must sit behind the gateway
    that resolves tenant membership and sets them, and must not be reachable
    by clients directly. Role checks such as require_role rely on this.

    Args:
        x_company_id: Company ID from X-Company-ID header
        x_tenant_role: Role from X-Tenant-Role header

    Raises:
        HTTPException: If the role header holds an unknown role
    """
    role = None
    if x_tenant_role:
        role = parse_role(x_tenant_role.strip().lower())
        if role is None:
            raise HTTPException(status_code=400, detail="Invalid tenant role")

    company_id = x_company_id.strip() if x_company_id else None

    return TenantState(company_id=company_id or None, role=role, loading=False)
