# backend/erpguard/schemas/quota.py
from pydantic import BaseModel, ConfigDict
from typing import Dict, Optional
from datetime import datetime

from erpguard.core.constants import QuotaReason, ResourceType


class UsageStats(BaseModel):
    """Row counts scoped to one company"""
    users: int = 0
    invoices: int = 0
    customers: int = 0
    products: int = 0
    deals: int = 0
    quotes: int = 0

    def count(self, resource: ResourceType) -> int:
        return getattr(self, resource.value)


class PlanFeatures(BaseModel):
    """
    Limits attached to a subscription plan. -1 means unlimited.

    A limit missing from the stored features is read as None and treated
    as unlimited by the quota guard.
    """
    max_users: Optional[int] = None
    max_invoices: Optional[int] = None
    max_customers: Optional[int] = None
    max_products: Optional[int] = None
    max_deals: Optional[int] = None
    max_quotes: Optional[int] = None
    max_storage_mb: Optional[int] = None
    modules: Dict[str, bool] = {}

    model_config = ConfigDict(extra="allow")

    def limit_for(self, resource: ResourceType) -> Optional[int]:
        return getattr(self, f"max_{resource.value}")


class CompanyPlan(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    display_name: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    features: PlanFeatures

    model_config = ConfigDict(from_attributes=True)


class QuotaCheckResult(BaseModel):
    allowed: bool
    reason: Optional[QuotaReason] = None
    message: Optional[str] = None
    current: Optional[int] = None
    limit: Optional[int] = None
    remaining: Optional[int] = None
    unlimited: Optional[bool] = None


class ResourceQuota(BaseModel):
    resource: ResourceType
    can_add: bool
    is_quota_exceeded: bool
    has_no_plan: bool
    is_unlimited: bool
    current: int = 0
    limit: int = 0
    remaining: int = 0
    message: Optional[str] = None
    usage_percentage: int = 0
    tooltip: Optional[str] = None


class QuotaSummary(BaseModel):
    loading: bool
    quotas: Dict[ResourceType, ResourceQuota]
    has_any_quota_exceeded: bool
    can_add_any: Dict[ResourceType, bool]


class UsageResponse(BaseModel):
    company_id: Optional[str] = None
    loading: bool
    usage: Optional[UsageStats] = None
    plan: Optional[CompanyPlan] = None
    percentages: Dict[ResourceType, int]


class PlanAssignment(BaseModel):
    plan_id: Optional[str] = None
    start_trial: bool = False


class CompanySubscription(BaseModel):
    id: str
    plan_id: Optional[str] = None
    subscription_status: Optional[str] = None
    is_trial: bool = False
    trial_ends_at: Optional[datetime] = None
    subscription_started_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
