# backend/erpguard/api/v1/companies.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from erpguard.api.dependencies import get_quota_pool, require_role
from erpguard.core.constants import TenantRole
from erpguard.core.tenant import TenantState
from erpguard.db.database import get_db
from erpguard.db.repositories.company_repository import CompanyRepository
from erpguard.schemas.quota import CompanySubscription, PlanAssignment
from erpguard.services.quota_service import QuotaGuardPool

router = APIRouter()


@router.put("/{company_id}/plan", response_model=CompanySubscription)
async def assign_company_plan(
    company_id: str,
    assignment: PlanAssignment,
    tenant: TenantState = Depends(require_role(TenantRole.SUPERADMIN)),
    db: AsyncSession = Depends(get_db),
    pool: QuotaGuardPool = Depends(get_quota_pool),
):
    """Assign, trial or clear a company's subscription plan"""
    company_repo = CompanyRepository(db)

    if assignment.plan_id and not await company_repo.get_subscription_plan(assignment.plan_id):
        raise HTTPException(status_code=404, detail="Plan not found")

    company = await company_repo.assign_plan(
        company_id,
        assignment.plan_id,
        start_trial=assignment.start_trial,
    )
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")

    # Cached plan and usage for this company are no longer valid
    pool.invalidate(company_id)

    return company
