"""
Plan quota enforcement.

Soft quotas: usage counts are cached for a short window, so a count that
is a few seconds old can let one extra record through. Nothing is reserved;
concurrent refreshes of one company share a single load per resource.
"""
from collections import OrderedDict
from typing import Awaitable, Callable, Optional, Union
import asyncio
import logging
import math
import time

from erpguard.core.config import settings
from erpguard.core.constants import (
    ACTION_TO_RESOURCE,
    RESOURCE_LABELS,
    RESOURCE_TO_ACTION,
    UNLIMITED,
    ActionType,
    QuotaReason,
    ResourceType,
)
from erpguard.schemas.quota import (
    CompanyPlan,
    QuotaCheckResult,
    QuotaSummary,
    ResourceQuota,
    UsageStats,
)

logger = logging.getLogger(__name__)

UsageFetcher = Callable[[str], Awaitable[UsageStats]]
PlanFetcher = Callable[[str], Awaitable[Optional[CompanyPlan]]]

COMPANY_NOT_FOUND_MESSAGE = "Company information not found"
NO_PLAN_MESSAGE = "Please select a subscription plan"


def evaluate_quota(
    action: ActionType,
    company_id: Optional[str],
    usage: Optional[UsageStats],
    plan: Optional[CompanyPlan],
    loading: bool = False,
) -> QuotaCheckResult:
    """
    Decide whether a create action fits the company's plan.

    Checked in order: company, loading (allowed), plan, unlimited, limit.
    A limit missing from the plan features counts as unlimited.
    """
    if not company_id:
        return QuotaCheckResult(
            allowed=False,
            reason=QuotaReason.COMPANY_NOT_FOUND,
            message=COMPANY_NOT_FOUND_MESSAGE,
        )

    if loading:
        return QuotaCheckResult(allowed=True)

    if plan is None:
        return QuotaCheckResult(
            allowed=False,
            reason=QuotaReason.NO_PLAN,
            message=NO_PLAN_MESSAGE,
        )

    resource = ACTION_TO_RESOURCE[action]
    limit = plan.features.limit_for(resource)
    current = usage.count(resource) if usage else 0

    if limit is None or limit == UNLIMITED:
        return QuotaCheckResult(allowed=True, unlimited=True, current=current)

    if current >= limit:
        return QuotaCheckResult(
            allowed=False,
            reason=QuotaReason.QUOTA_EXCEEDED,
            message=f"Plan limit reached ({current}/{limit}). Please upgrade your plan.",
            current=current,
            limit=limit,
            remaining=0,
        )

    return QuotaCheckResult(
        allowed=True,
        current=current,
        limit=limit,
        remaining=limit - current,
    )


def usage_percentage(
    resource: ResourceType,
    usage: Optional[UsageStats],
    plan: Optional[CompanyPlan],
) -> int:
    if usage is None or plan is None:
        return 0

    limit = plan.features.limit_for(resource)
    current = usage.count(resource)

    if limit is None or limit == UNLIMITED:
        return 0
    if limit == 0:
        return 100

    # Half rounds up
    return int(math.floor(current / limit * 100 + 0.5))


def quota_exceeded_message(resource: Union[ResourceType, str], limit: int) -> str:
    try:
        name = RESOURCE_LABELS[ResourceType(resource)]
    except ValueError:
        name = str(resource)
    return f"Your plan's {name} limit ({limit}) has been reached. Upgrade your plan to add more {name}s."


def quota_tooltip(quota: ResourceQuota, loading: bool = False) -> Optional[str]:
    """Hint for the create button of a resource"""
    if loading:
        return "Loading..."
    if quota.has_no_plan:
        return NO_PLAN_MESSAGE
    if quota.is_quota_exceeded:
        return quota.message or "Plan limit reached"
    if not quota.can_add:
        return quota.message
    if quota.is_unlimited:
        return None
    return f"{quota.current} / {quota.limit} used ({quota.remaining} left)"


class QuotaGuard:
    """
    Quota view of one company.

    Usage and plan are loaded through the injected fetchers and kept for
    their freshness windows. While either is loading every action is
    allowed; the write itself may still be rejected downstream.
    """

    def __init__(
        self,
        company_id: Optional[str],
        fetch_usage: UsageFetcher,
        fetch_plan: PlanFetcher,
        usage_ttl: float = settings.USAGE_CACHE_TTL_SECONDS,
        plan_ttl: float = settings.PLAN_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.company_id = company_id
        self._fetch_usage = fetch_usage
        self._fetch_plan = fetch_plan
        self.usage_ttl = usage_ttl
        self.plan_ttl = plan_ttl
        self._clock = clock

        self._usage: Optional[UsageStats] = None
        self._plan: Optional[CompanyPlan] = None
        self._usage_fetched_at: Optional[float] = None
        self._plan_fetched_at: Optional[float] = None
        # Bumped by invalidate_*; a load that started earlier does not mark its data fresh
        self._usage_epoch = 0
        self._plan_epoch = 0
        # One load per resource at a time; callers queued behind it reuse the result
        self._usage_lock = asyncio.Lock()
        self._plan_lock = asyncio.Lock()

        # Only the first load counts as loading; later refreshes keep serving cached data
        self._usage_loading = bool(company_id)
        self._plan_loading = bool(company_id)

    @property
    def loading(self) -> bool:
        return self._usage_loading or self._plan_loading

    @property
    def usage(self) -> Optional[UsageStats]:
        return self._usage

    @property
    def plan(self) -> Optional[CompanyPlan]:
        return self._plan

    def _is_stale(self, fetched_at: Optional[float], ttl: float) -> bool:
        return fetched_at is None or self._clock() - fetched_at >= ttl

    async def refresh(self, force: bool = False) -> None:
        """Reload usage and plan if they are older than their windows"""
        if not self.company_id:
            return

        async with self._usage_lock:
            if force or self._is_stale(self._usage_fetched_at, self.usage_ttl):
                await self._load_usage()

        async with self._plan_lock:
            if force or self._is_stale(self._plan_fetched_at, self.plan_ttl):
                await self._load_plan()

    async def _load_usage(self) -> None:
        epoch = self._usage_epoch
        try:
            usage = await self._fetch_usage(self.company_id)
        except Exception:
            logger.warning(
                "Usage fetch failed",
                exc_info=True,
                extra={"company_id": self.company_id},
            )
            return
        finally:
            self._usage_loading = False

        self._usage = usage
        if epoch == self._usage_epoch:
            self._usage_fetched_at = self._clock()

    async def _load_plan(self) -> None:
        epoch = self._plan_epoch
        try:
            plan = await self._fetch_plan(self.company_id)
        except Exception:
            logger.warning(
                "Plan fetch failed",
                exc_info=True,
                extra={"company_id": self.company_id},
            )
            return
        finally:
            self._plan_loading = False

        self._plan = plan
        if epoch == self._plan_epoch:
            self._plan_fetched_at = self._clock()

    def invalidate_usage(self) -> None:
        """Force the next refresh to recount, e.g. after a record was created"""
        self._usage_epoch += 1
        self._usage_fetched_at = None

    def invalidate_plan(self) -> None:
        self._plan_epoch += 1
        self._plan_fetched_at = None

    def can_perform_action(self, action: Union[ActionType, str]) -> QuotaCheckResult:
        result = evaluate_quota(
            ActionType(action),
            self.company_id,
            self._usage,
            self._plan,
            loading=self.loading,
        )
        if result.reason == QuotaReason.QUOTA_EXCEEDED:
            logger.info(
                f"Quota exceeded for {ActionType(action).value} ({result.current}/{result.limit})",
                extra={"company_id": self.company_id},
            )
        return result

    def get_usage_percentage(self, resource: Union[ResourceType, str]) -> int:
        return usage_percentage(ResourceType(resource), self._usage, self._plan)

    def quota_for(self, resource: Union[ResourceType, str]) -> ResourceQuota:
        resource = ResourceType(resource)
        result = evaluate_quota(
            RESOURCE_TO_ACTION[resource],
            self.company_id,
            self._usage,
            self._plan,
            loading=self.loading,
        )

        quota = ResourceQuota(
            resource=resource,
            can_add=result.allowed,
            is_quota_exceeded=not result.allowed and result.reason == QuotaReason.QUOTA_EXCEEDED,
            has_no_plan=not result.allowed and result.reason == QuotaReason.NO_PLAN,
            is_unlimited=bool(result.unlimited),
            current=result.current or 0,
            limit=result.limit or 0,
            remaining=result.remaining or 0,
            message=result.message,
            usage_percentage=self.get_usage_percentage(resource),
        )
        quota.tooltip = quota_tooltip(quota, loading=self.loading)
        return quota

    def all_quotas(self) -> QuotaSummary:
        quotas = {resource: self.quota_for(resource) for resource in ResourceType}
        return QuotaSummary(
            loading=self.loading,
            quotas=quotas,
            has_any_quota_exceeded=any(q.is_quota_exceeded for q in quotas.values()),
            can_add_any={resource: q.can_add for resource, q in quotas.items()},
        )


class QuotaGuardPool:
    """
    Process-wide guards, one per company, so freshness windows span requests.

    Holds at most max_guards companies; the least recently used guard is
    dropped when a new company arrives at capacity.
    """

    def __init__(
        self,
        fetch_usage: UsageFetcher,
        fetch_plan: PlanFetcher,
        max_guards: int = settings.QUOTA_GUARD_POOL_SIZE,
    ):
        self._fetch_usage = fetch_usage
        self._fetch_plan = fetch_plan
        self.max_guards = max_guards
        self._guards: "OrderedDict[str, QuotaGuard]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._guards)

    def get(self, company_id: Optional[str]) -> QuotaGuard:
        if not company_id:
            return QuotaGuard(None, self._fetch_usage, self._fetch_plan)

        guard = self._guards.get(company_id)
        if guard is not None:
            self._guards.move_to_end(company_id)
            return guard

        guard = QuotaGuard(company_id, self._fetch_usage, self._fetch_plan)
        self._guards[company_id] = guard
        while len(self._guards) > self.max_guards:
            evicted, _ = self._guards.popitem(last=False)
            logger.debug("Evicted quota guard", extra={"company_id": evicted})
        return guard

    def invalidate(self, company_id: str) -> None:
        self._guards.pop(company_id, None)
