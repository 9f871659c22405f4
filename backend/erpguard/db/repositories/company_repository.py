# backend/erpguard/db/repositories/company_repository.py
from typing import Optional
from datetime import timedelta
import logging

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from erpguard.core.config import settings
from erpguard.core.constants import ResourceType
from erpguard.db.base import utcnow
from erpguard.db.models.company import Company
from erpguard.db.models.subscription_plan import SubscriptionPlan
from erpguard.db.models.resources import RESOURCE_MODELS
from erpguard.db.repositories.base import BaseRepository
from erpguard.schemas.quota import CompanyPlan, UsageStats

logger = logging.getLogger(__name__)


class CompanyRepository(BaseRepository[Company]):
    """Repository for company subscription and usage"""

    def __init__(self, session: AsyncSession):
        super().__init__(Company, session)

    async def get_plan(self, company_id: str) -> Optional[CompanyPlan]:
        """Get the plan assigned to a company, None if there is none"""
        result = await self.session.execute(
            select(Company)
            .options(selectinload(Company.plan))
            .where(Company.id == company_id)
        )
        company = result.scalar_one_or_none()

        if not company or not company.plan:
            return None

        return CompanyPlan.model_validate(company.plan)

    async def get_subscription_plan(self, plan_id: str) -> Optional[SubscriptionPlan]:
        result = await self.session.execute(
            select(SubscriptionPlan).where(SubscriptionPlan.id == plan_id)
        )
        return result.scalar_one_or_none()

    async def count_resource(self, company_id: str, resource: ResourceType) -> int:
        """Count one resource type in a company"""
        model = RESOURCE_MODELS[resource]
        result = await self.session.execute(
            select(func.count(model.id)).where(model.company_id == company_id)
        )
        return result.scalar() or 0

    async def get_usage_stats(self, company_id: str) -> UsageStats:
        """
        Count every quota resource of a company.

        The counts are independent queries, not one snapshot.
        """
        counts = {}
        for resource in ResourceType:
            counts[resource.value] = await self.count_resource(company_id, resource)
        return UsageStats(**counts)

    async def assign_plan(
        self,
        company_id: str,
        plan_id: Optional[str],
        start_trial: bool = False,
    ) -> Optional[Company]:
        """
        Point a company at a plan.

        A trial runs for TRIAL_PERIOD_DAYS. Assigning a plan without a
        trial activates it; a None plan only clears the assignment.
        """
        company = await self.get(company_id)
        if not company:
            return None

        now = utcnow()
        updates = {"plan_id": plan_id}

        if start_trial:
            updates.update(
                is_trial=True,
                trial_ends_at=now + timedelta(days=settings.TRIAL_PERIOD_DAYS),
                subscription_status="trial",
            )
        elif plan_id:
            updates.update(
                is_trial=False,
                subscription_status="active",
                subscription_started_at=now,
            )

        company = await self.update(company_id, updates)
        logger.info(
            f"Assigned plan {plan_id} (trial={start_trial})",
            extra={"company_id": company_id},
        )
        return company
