import asyncio
from sqlalchemy import select

from erpguard.core.constants import MODULE_KEYS, PLAN_LIMITS
from erpguard.db.database import async_session_local
from erpguard.db.models.subscription_plan import SubscriptionPlan


def plan_features(limits: dict) -> dict:
    features = {key: value for key, value in limits.items() if key.startswith("max_")}
    features["modules"] = {module.value: True for module in MODULE_KEYS}
    return features


async def seed_plans():
    async with async_session_local() as session:
        for sort_order, (plan_type, limits) in enumerate(PLAN_LIMITS.items()):
            result = await session.execute(
                select(SubscriptionPlan).where(SubscriptionPlan.name == plan_type.value)
            )
            plan = result.scalar_one_or_none()

            if plan:
                plan.features = plan_features(limits)
                print(f"Updated plan: {plan.name}")
            else:
                session.add(SubscriptionPlan(
                    name=plan_type.value,
                    display_name=limits["display_name"],
                    price=limits["price"],
                    currency="USD",
                    features=plan_features(limits),
                    sort_order=sort_order,
                ))
                print(f"Created plan: {plan_type.value}")

        await session.commit()


if __name__ == "__main__":
    asyncio.run(seed_plans())
