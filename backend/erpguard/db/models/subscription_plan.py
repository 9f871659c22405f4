# backend/erpguard/db/models/subscription_plan.py
from sqlalchemy import Column, String, Integer, Boolean, JSON, Numeric
from sqlalchemy.orm import relationship
import uuid
from erpguard.db.base import BaseModel


class SubscriptionPlan(BaseModel):
    """
    Subscription plan with its resource limits.

    `features` holds max_users, max_invoices, max_customers, max_products,
    max_deals, max_quotes, max_storage_mb (-1 = unlimited) and a `modules` map.
    """
    __tablename__ = "subscription_plans"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    name = Column(String(100), unique=True, nullable=False)
    display_name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), default=0, nullable=False)
    currency = Column(String(3), default="USD", nullable=False)
    features = Column(JSON, default=dict, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    # Relationships
    companies = relationship("Company", back_populates="plan")
