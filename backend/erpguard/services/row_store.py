"""
Row-store collaborators for the permission and quota services.

Each call opens its own session, so the functions can be handed to
long-lived service objects independently of any request.
"""
from typing import Iterable, List, Optional

from erpguard.core.constants import TenantRole
from erpguard.db.database import async_session_local
from erpguard.db.repositories.company_repository import CompanyRepository
from erpguard.db.repositories.permission_repository import PermissionRepository
from erpguard.schemas.permission import PermissionOverrideRow, PermissionOverrideWrite
from erpguard.schemas.quota import CompanyPlan, UsageStats


async def fetch_overrides(company_id: str, role: Optional[TenantRole] = None) -> List[PermissionOverrideRow]:
    async with async_session_local() as session:
        return await PermissionRepository(session).fetch_overrides(
            company_id, role.value if role else None
        )


async def write_overrides(company_id: str, rows: Iterable[PermissionOverrideWrite]) -> int:
    async with async_session_local() as session:
        return await PermissionRepository(session).write_overrides(company_id, rows)


async def fetch_usage(company_id: str) -> UsageStats:
    async with async_session_local() as session:
        return await CompanyRepository(session).get_usage_stats(company_id)


async def fetch_plan(company_id: str) -> Optional[CompanyPlan]:
    async with async_session_local() as session:
        return await CompanyRepository(session).get_plan(company_id)
