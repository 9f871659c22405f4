# backend/erpguard/api/v1/quotas.py
from fastapi import APIRouter, Depends, HTTPException

from erpguard.api.dependencies import get_quota_guard
from erpguard.core.constants import ActionType, ResourceType
from erpguard.schemas.quota import QuotaCheckResult, QuotaSummary, UsageResponse
from erpguard.services.quota_service import QuotaGuard

router = APIRouter()


@router.get(
    "/check/{action}",
    response_model=QuotaCheckResult,
    response_model_exclude_none=True,
)
async def check_action(
    action: str,
    guard: QuotaGuard = Depends(get_quota_guard),
):
    """Whether the company may create one more record for an action"""
    try:
        action_type = ActionType(action.upper())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown action: {action}")

    return guard.can_perform_action(action_type)


@router.get("/usage", response_model=UsageResponse)
async def get_usage(guard: QuotaGuard = Depends(get_quota_guard)):
    return UsageResponse(
        company_id=guard.company_id,
        loading=guard.loading,
        usage=guard.usage,
        plan=guard.plan,
        percentages={resource: guard.get_usage_percentage(resource) for resource in ResourceType},
    )


@router.get("/summary", response_model=QuotaSummary)
async def get_summary(guard: QuotaGuard = Depends(get_quota_guard)):
    return guard.all_quotas()
